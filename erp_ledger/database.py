import logging
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from erp_ledger.config import settings
from erp_ledger.repositories.entry import EntryRepository
from erp_ledger.repositories.account import AccountRepository
from erp_ledger.repositories.fiscal_year import FiscalYearRepository
from erp_ledger.repositories.audit import AuditLogger
from erp_ledger.models.accounting import AccountingEntry, Account, FiscalYear
from erp_ledger.models.audit import AuditEvent

logger = logging.getLogger(__name__)

class Database:
    client: AsyncIOMotorClient = None
    db: AsyncIOMotorDatabase = None

    # Repositories
    entries: EntryRepository = None
    accounts: AccountRepository = None
    fiscal_years: FiscalYearRepository = None
    audit: AuditLogger = None

    def connect(self):
        """Initialize database connection and repositories."""
        self.client = AsyncIOMotorClient(settings.MONGODB_URL)
        self.db = self.client[settings.DB_NAME]

        # Initialize repositories with their respective collections and models
        self.entries = EntryRepository(self.db.accounting_entries, AccountingEntry)
        self.accounts = AccountRepository(self.db.accounts, Account)
        self.fiscal_years = FiscalYearRepository(self.db.fiscal_years, FiscalYear)
        self.audit = AuditLogger(self.db.audit_log, AuditEvent)

        logger.info("Connected to MongoDB database %s", settings.DB_NAME)

    def close(self):
        """Close database connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

db = Database()
