# =============================================================================
# scripts/check_remote_connection.py
# Diagnose the remote store connection
# =============================================================================
"""
Runs the same read/write verification the app runs at startup and prints
the resulting status.

Usage:
    python scripts/check_remote_connection.py

Prerequisites:
    - Configure .streamlit/secrets.toml (or SUPABASE_URL / SUPABASE_KEY)
"""

import sys
import io
from pathlib import Path

sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding='utf-8', errors='replace')

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from shopfloor_core.config import load_config
from shopfloor_core.logging import setup_logging
from shopfloor_core.offline import BackendContext, ConnectivityMonitor, LocalKeys, LocalStore


def main():
    base = load_config()
    setup_logging(base.log_level)

    local_store = LocalStore(base.db_path)
    local_store.initialize()
    config = load_config(stored_remote=local_store.read(LocalKeys.REMOTE_CONFIG, None))

    print("=" * 60)
    print("Remote store connection check")
    print("=" * 60)
    print(f"URL: {config.remote.url or '(not set)'}")
    print(f"Key configured: {config.remote.is_configured}")

    context = BackendContext(local_store)
    monitor = ConnectivityMonitor(context, config)
    monitor.initialize(background=False)

    status = context.get_status_display()
    print(f"\nMode:      {status['mode']}")
    print(f"Connected: {status['connected']}")
    if status["error"]:
        print(f"Error:     {status['error']}")

    local_store.close()
    sys.exit(0 if status["connected"] else 1)


if __name__ == "__main__":
    main()
