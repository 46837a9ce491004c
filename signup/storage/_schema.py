SCHEMA_VERSION = 2

SCHEMA_SQL = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version   INTEGER NOT NULL,
    applied_at REAL NOT NULL
);

-- Pending accounts: one row per provisioning attempt
CREATE TABLE IF NOT EXISTS pending_accounts (
    reference_id        TEXT PRIMARY KEY,
    username            TEXT NOT NULL UNIQUE,
    account_type        TEXT NOT NULL CHECK (account_type IN ('free', 'paid')),
    status              TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'paid')),
    verification_code   TEXT,
    payment_amount_usd  TEXT,
    payment_amount_hive TEXT,
    hive_price_snapshot TEXT,
    created_at          REAL NOT NULL,
    paid_at             REAL,
    paid_from           TEXT,
    paid_amount         TEXT,
    creation_status     TEXT NOT NULL DEFAULT 'not_started'
                        CHECK (creation_status IN ('not_started', 'creating', 'created', 'failed')),
    creation_error      TEXT
);

-- Indexes for operational scans
CREATE INDEX IF NOT EXISTS idx_status ON pending_accounts(status);
CREATE INDEX IF NOT EXISTS idx_created_at ON pending_accounts(created_at);
CREATE INDEX IF NOT EXISTS idx_status_creation ON pending_accounts(status, creation_status);
"""
