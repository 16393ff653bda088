# =============================================================================
# scripts/create_remote_tables.py
# Print the SQL that creates the remote document tables in Supabase
# =============================================================================
"""
Run this script and paste the output into the Supabase SQL editor.

Each collection (jobs, logs, users, settings, __debug) is one table holding
a JSON document per row.

Usage:
    python scripts/create_remote_tables.py
    python scripts/create_remote_tables.py --no-policies
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from shopfloor_core.data.supabase_client import COLLECTIONS

TABLE_SQL = """
create table if not exists "{name}" (
    id text primary key,
    data jsonb not null default '{{}}'::jsonb,
    updated_at timestamptz not null default now()
);
"""

POLICY_SQL = """
alter table "{name}" enable row level security;
drop policy if exists "{name}_anon_all" on "{name}";
create policy "{name}_anon_all" on "{name}"
    for all to anon, authenticated using (true) with check (true);
"""

INDEX_SQL = """
create index if not exists logs_job_id_idx on "logs" ((data->>'jobId'));
create index if not exists logs_user_id_idx on "logs" ((data->>'userId'));
"""


def build_sql(with_policies: bool = True) -> str:
    parts = []
    for name in COLLECTIONS:
        parts.append(TABLE_SQL.format(name=name))
        if with_policies:
            parts.append(POLICY_SQL.format(name=name))
    parts.append(INDEX_SQL)
    return "".join(parts).strip() + "\n"


def main():
    parser = argparse.ArgumentParser(description="Print SQL for the remote collection tables")
    parser.add_argument(
        "--no-policies",
        action="store_true",
        help="Skip the row-level security policies",
    )
    args = parser.parse_args()
    print(build_sql(with_policies=not args.no_policies))


if __name__ == "__main__":
    main()
