#!/usr/bin/env python3
"""
Health check for the BSC indexer.

Exit code 0 when the database answers and has the indexer tables, 1 otherwise.
The RPC probe and cursor lag are reported but only fail the check with --require-rpc.
"""

import argparse
import os
import sys

from sqlalchemy import inspect

sys.path.insert(0, os.path.realpath(os.path.join(os.path.dirname(__file__), "..")))

from src.config import settings  # noqa: E402
from src.database.connection import build_engine, build_session_factory, check_connection  # noqa: E402
from src.models.base import Base  # noqa: E402
import src.models  # noqa: E402,F401
from src.services.chain_rpc import ChainRPCService  # noqa: E402
from src.services.persistence import PersistenceGateway  # noqa: E402


def check_database(engine) -> bool:
    if not check_connection(engine):
        print("❌ Database connection failed.")
        return False
    print("✅ Database connection successful.")

    tables = set(inspect(engine).get_table_names())
    missing = sorted(set(Base.metadata.tables.keys()) - tables)
    for table in missing:
        print(f"❌ Table '{table}' not found.")
    if not missing:
        print("✅ All tables found in the database.")
    return not missing


def check_rpc(rpc_url: str):
    """Return the chain tip, or None when the endpoint is unusable."""
    try:
        rpc = ChainRPCService(rpc_url=rpc_url)
    except Exception as e:
        print(f"❌ RPC check failed: {e}")
        return None

    try:
        if not rpc.test_connection():
            status = rpc.get_connection_status()
            print(
                f"❌ RPC unhealthy ({status['state']}, "
                f"{status['consecutive_failures']} consecutive failures)."
            )
            return None

        tip = rpc.get_block_number()
        print(f"✅ RPC reachable, chain tip {tip}.")
        return tip
    except Exception as e:
        print(f"❌ RPC check failed: {e}")
        return None
    finally:
        rpc.close()


def run_health_check(database_url: str, rpc_url: str = None, require_rpc: bool = False) -> int:
    print("--- Starting Health Check ---")
    engine = build_engine(database_url)
    try:
        healthy = check_database(engine)

        cursor = None
        if healthy:
            db = build_session_factory(engine)()
            try:
                cursor = PersistenceGateway(db).get_cursor(settings.CHAIN_NAME)
            finally:
                db.close()
            print(f"ℹ️  Last processed block: {cursor if cursor is not None else 'none'}")

        if rpc_url:
            tip = check_rpc(rpc_url)
            if tip is None and require_rpc:
                healthy = False
            elif tip is not None and cursor is not None:
                print(f"ℹ️  Blocks behind: {max(0, tip - cursor)}")
        elif require_rpc:
            print("❌ RPC_ENDPOINT is not configured.")
            healthy = False
    finally:
        engine.dispose()

    print("\n--- Health Check Complete ---")
    print("🎉 Health check passed" if healthy else "🔥 Health check failed")
    return 0 if healthy else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="BSC indexer health check")
    parser.add_argument("--database-url", default=settings.DATABASE_URL)
    parser.add_argument("--rpc-url", default=settings.RPC_ENDPOINT)
    parser.add_argument("--require-rpc", action="store_true", help="Fail when the RPC endpoint is unreachable")
    args = parser.parse_args()

    sys.exit(run_health_check(args.database_url, args.rpc_url, args.require_rpc))
