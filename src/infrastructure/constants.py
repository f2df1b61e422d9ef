"""Infrastructure constants, mostly for the database layer."""

# Connection pool
POOL_RECYCLE_SECONDS = 3600  # 1 hour
COMMAND_TIMEOUT_SECONDS = 60

# Constraint names must be deterministic for migrations
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Pagination
DEFAULT_PAGINATION_LIMIT = 100

# Rows fetched per round trip by full-table audits
SCAN_BATCH_SIZE = 500

# Longest SQL text kept in slow query logs
MAX_LOGGED_STATEMENT_LENGTH = 500
