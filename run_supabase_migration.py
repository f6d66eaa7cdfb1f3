#!/usr/bin/env python3
"""Check the ROI Brain Supabase tables and print the DDL for anything missing."""
import sys
sys.path.insert(0, '.')

from roibrain.core.config import get_settings
from roibrain.core.llm_usage import USAGE_TABLE
from roibrain.db.supabase_client import get_supabase

CACHE_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    cache_key   TEXT PRIMARY KEY,
    payload     JSONB NOT NULL,
    vertical    TEXT,
    expires_at  TIMESTAMPTZ NOT NULL,
    created_at  TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_{table}_expires_at ON {table} (expires_at);

COMMENT ON TABLE {table} IS 'Persistent tier of the ROI Brain response cache';
"""

USAGE_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    id                  UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    workflow            TEXT NOT NULL,
    chain               TEXT,
    model               TEXT NOT NULL,
    provider            TEXT NOT NULL DEFAULT 'anthropic',
    tokens_input        INTEGER NOT NULL DEFAULT 0,
    tokens_output       INTEGER NOT NULL DEFAULT 0,
    estimated_cost_usd  NUMERIC(12, 6) NOT NULL DEFAULT 0,
    duration_ms         INTEGER NOT NULL DEFAULT 0,
    session_id          TEXT,
    vertical            TEXT,
    created_at          TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""


def check_table(supabase, table: str, columns: str, ddl: str) -> bool:
    print(f"🔍 Checking table {table}...")
    try:
        supabase.table(table).select(columns).limit(1).execute()
        print(f"✅ {table} exists")
        return True
    except Exception as e:
        print(f"❌ {table} check failed: {e}")
        print("💡 Run this SQL in your Supabase SQL editor:")
        print(ddl.format(table=table))
        return False


def run_migration():
    supabase = get_supabase()
    cache_table = get_settings().CACHE_L2_TABLE

    print("🚀 Checking ROI Brain tables")
    ok = check_table(supabase, cache_table, "cache_key,payload,expires_at", CACHE_DDL)
    ok = check_table(supabase, USAGE_TABLE, "workflow,model,tokens_input", USAGE_DDL) and ok
    if not ok:
        sys.exit(1)

if __name__ == "__main__":
    run_migration()
