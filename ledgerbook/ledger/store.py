"""
Ledger Store

The single owner of the four persisted collections:

    transactions | products | contacts | risk

LIFECYCLE:
1. load()    - read every collection from key-value storage at startup
2. mutate    - each operation updates the in-memory collection first
3. persist   - then writes the changed key to storage

DESIGN DECISION: The in-memory store is authoritative for the session.
Persistence is best-effort: a storage failure is logged and audited but
never raised, so a flaky disk or network never blocks bookkeeping.
Writes are per key and not atomic across keys.

Mutations are synchronous and single-threaded; callers never observe a
half-applied change. Readers get list copies, so holding on to a snapshot
does not expose later mutations.
"""

from typing import Any, Optional, TypeVar
from uuid import UUID

import structlog
from pydantic import BaseModel, ValidationError

from ledgerbook.audit import AuditLogger
from ledgerbook.ledger.reconciler import apply_to_inventory, reverse_in_inventory
from ledgerbook.models.audit import AuditEventBuilder, AuditEventType
from ledgerbook.models.ledger import Contact, Product, Transaction
from ledgerbook.models.risk import RiskAssessment
from ledgerbook.services.storage import KeyValueStorageInterface, StorageError


logger = structlog.get_logger(__name__)

TRANSACTIONS_KEY = "transactions"
PRODUCTS_KEY = "products"
CONTACTS_KEY = "contacts"
RISK_KEY = "risk"

ModelT = TypeVar("ModelT", bound=BaseModel)


class LedgerStore:
    """
    Owns the ledger collections and their persistence.

    No other component mutates persisted state. The reconciler and the
    aggregation engine receive snapshots and return values.
    """

    def __init__(
        self,
        storage: KeyValueStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        key_prefix: str = "",
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._key_prefix = key_prefix

        self._transactions: list[Transaction] = []
        self._products: list[Product] = []
        self._contacts: list[Contact] = []
        self._risk: Optional[RiskAssessment] = None

    # =========================================================================
    # Read access (snapshots)
    # =========================================================================

    @property
    def transactions(self) -> list[Transaction]:
        return list(self._transactions)

    @property
    def products(self) -> list[Product]:
        return list(self._products)

    @property
    def contacts(self) -> list[Contact]:
        return list(self._contacts)

    @property
    def risk_assessment(self) -> Optional[RiskAssessment]:
        return self._risk

    def get_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        return next((t for t in self._transactions if t.id == transaction_id), None)

    def get_product(self, product_id: Optional[UUID]) -> Optional[Product]:
        """Look up a product. Dangling references simply return None."""
        return next((p for p in self._products if p.id == product_id), None)

    def get_contact(self, contact_id: Optional[UUID]) -> Optional[Contact]:
        """Look up a contact. Dangling references simply return None."""
        return next((c for c in self._contacts if c.id == contact_id), None)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def load(self) -> "LedgerStore":
        """
        Load all collections from storage.

        Missing keys mean an empty collection. Malformed records are skipped
        (and logged) rather than failing the whole load.
        """
        self._transactions = self._load_list(TRANSACTIONS_KEY, Transaction)
        self._products = self._load_list(PRODUCTS_KEY, Product)
        self._contacts = self._load_list(CONTACTS_KEY, Contact)

        raw_risk = self._read(RISK_KEY)
        self._risk = None
        if raw_risk is not None:
            try:
                self._risk = RiskAssessment.model_validate(raw_risk)
            except ValidationError as e:
                logger.warning("risk_record_malformed", error=str(e))

        if self._audit_logger:
            self._audit_logger.log_simple(
                AuditEventType.LEDGER_LOADED,
                "Ledger loaded from storage",
                transactions=len(self._transactions),
                products=len(self._products),
                contacts=len(self._contacts),
                has_risk=self._risk is not None,
            )
        return self

    def _key(self, name: str) -> str:
        return f"{self._key_prefix}{name}"

    def _read(self, name: str) -> Optional[Any]:
        try:
            return self._storage.get(self._key(name))
        except StorageError as e:
            logger.error("ledger_load_failed", key=name, error=str(e))
            if self._audit_logger:
                self._audit_logger.log_error(
                    error_type="ledger_load_failed",
                    error_message=str(e),
                    details={"key": self._key(name)},
                )
            return None

    def _load_list(self, name: str, model: type[ModelT]) -> list[ModelT]:
        raw = self._read(name)
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.error("ledger_record_not_a_list", key=name)
            return []

        records = []
        for idx, item in enumerate(raw):
            try:
                records.append(model.model_validate(item))
            except ValidationError as e:
                logger.warning(
                    "ledger_record_skipped",
                    key=name,
                    index=idx,
                    error=str(e),
                )
        return records

    def _persist(self, name: str, value: Any) -> bool:
        """Write one key. Failures are logged and audited, never raised."""
        try:
            self._storage.set(self._key(name), value)
            return True
        except Exception as e:
            logger.error("ledger_persist_failed", key=name, error=str(e))
            if self._audit_logger:
                self._audit_logger.log(AuditEventBuilder.persist_failed(name, str(e)))
            return False

    def _persist_transactions(self) -> bool:
        return self._persist(
            TRANSACTIONS_KEY,
            [t.model_dump(mode="json") for t in self._transactions],
        )

    def _persist_products(self) -> bool:
        return self._persist(
            PRODUCTS_KEY,
            [p.model_dump(mode="json") for p in self._products],
        )

    def _persist_contacts(self) -> bool:
        return self._persist(
            CONTACTS_KEY,
            [c.model_dump(mode="json") for c in self._contacts],
        )

    # =========================================================================
    # Transactions
    # =========================================================================

    def add_transaction(self, transaction: Transaction) -> Transaction:
        """
        Record a transaction and apply its stock effect.

        If the linked product no longer exists the transaction is still
        recorded; only the stock adjustment is skipped.
        """
        self._transactions.append(transaction)

        before = self.get_product(transaction.product_id)
        self._products, applied = apply_to_inventory(self._products, transaction)

        self._persist_transactions()
        if applied:
            self._persist_products()

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.transaction_recorded(
                transaction_id=transaction.id,
                transaction_type=transaction.type.value,
                amount=str(transaction.amount),
                category=transaction.category.value,
                user=transaction.user,
            ))
            self._audit_stock_change(transaction, before, applied, reversal=False)

        return transaction

    def delete_transaction(self, transaction_id: UUID) -> Optional[Transaction]:
        """
        Delete a transaction and reverse its stock effect.

        Deleting an unknown id is a no-op and returns None.
        """
        transaction = self.get_transaction(transaction_id)
        if transaction is None:
            logger.info("transaction_delete_noop", transaction_id=str(transaction_id))
            return None

        before = self.get_product(transaction.product_id)
        self._products, applied = reverse_in_inventory(self._products, transaction)
        self._transactions = [t for t in self._transactions if t.id != transaction_id]

        self._persist_transactions()
        if applied:
            self._persist_products()

        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.transaction_deleted(
                transaction_id=transaction.id,
                transaction_type=transaction.type.value,
                amount=str(transaction.amount),
            ))
            self._audit_stock_change(transaction, before, applied, reversal=True)

        return transaction

    def _audit_stock_change(
        self,
        transaction: Transaction,
        before: Optional[Product],
        applied: bool,
        reversal: bool,
    ) -> None:
        if not transaction.affects_stock:
            return
        if applied and before is not None:
            after = self.get_product(before.id)
            self._audit_logger.log(AuditEventBuilder.stock_adjusted(
                product_id=before.id,
                product_name=before.name,
                stock_before=before.stock,
                stock_after=after.stock,
                transaction_id=transaction.id,
                reversal=reversal,
            ))
        else:
            self._audit_logger.log(AuditEventBuilder.reconciliation_skipped(
                product_id=transaction.product_id,
                transaction_id=transaction.id,
                reversal=reversal,
            ))

    # =========================================================================
    # Master data
    # =========================================================================

    def add_product(self, product: Product) -> Product:
        self._products.append(product)
        self._persist_products()
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.master_data_changed(
                AuditEventType.PRODUCT_ADDED, "product", product.id, product.name,
            ))
        return product

    def delete_product(self, product_id: UUID) -> Optional[Product]:
        """
        Remove a product.

        Transactions referencing it are kept; their product_id becomes dangling.
        """
        product = self.get_product(product_id)
        if product is None:
            return None
        self._products = [p for p in self._products if p.id != product_id]
        self._persist_products()
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.master_data_changed(
                AuditEventType.PRODUCT_DELETED, "product", product.id, product.name,
            ))
        return product

    def add_contact(self, contact: Contact) -> Contact:
        self._contacts.append(contact)
        self._persist_contacts()
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.master_data_changed(
                AuditEventType.CONTACT_ADDED, "contact", contact.id, contact.name,
            ))
        return contact

    def delete_contact(self, contact_id: UUID) -> Optional[Contact]:
        """
        Remove a contact.

        Transactions keep their contact_name snapshot; contact_id becomes dangling.
        """
        contact = self.get_contact(contact_id)
        if contact is None:
            return None
        self._contacts = [c for c in self._contacts if c.id != contact_id]
        self._persist_contacts()
        if self._audit_logger:
            self._audit_logger.log(AuditEventBuilder.master_data_changed(
                AuditEventType.CONTACT_DELETED, "contact", contact.id, contact.name,
            ))
        return contact

    # =========================================================================
    # Risk assessment
    # =========================================================================

    def set_risk_assessment(self, assessment: RiskAssessment) -> RiskAssessment:
        """Replace the stored assessment wholesale."""
        self._risk = assessment
        self._persist(RISK_KEY, assessment.model_dump(mode="json"))
        return assessment
