# cli.py
"""
Command-line interface for tenant cache operations.

    python -m cache_manager.cli --tenant csu --status
    python -m cache_manager.cli --tenant csu --refresh
    python -m cache_manager.cli --tenant csu --force-refresh
    python -m cache_manager.cli --tenant csu --clear
"""

import argparse
import json
import sys

from exceptions import ReportsError
from logger_config import setup_logging
from main_config import load_config
from services import build_services


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Tenant cache manager CLI")
    parser.add_argument("--tenant", required=True, help="Tenant code (3-4 lowercase letters)")
    parser.add_argument("--config", help="Path to config.json (default: $REPORTS_CONFIG_FILE or config.json)")
    parser.add_argument("--tenants-file", help="Override the tenants file from the configuration")
    parser.add_argument("--debug", action="store_true", help="Log to the console as well as logs/app.log")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument("--status", action="store_true", help="Show cache files, timestamp and derived counts")
    group.add_argument("--refresh", action="store_true", help="Refresh only if the cache is stale")
    group.add_argument("--force-refresh", action="store_true", help="Refresh regardless of cache age")
    group.add_argument("--clear", action="store_true", help="Delete every cache entry for the tenant")

    args = parser.parse_args(argv)
    setup_logging(debug=args.debug)

    try:
        config = load_config(args.config)
        if args.tenants_file:
            config["tenants_file"] = args.tenants_file
        svc = build_services(config)
        tenant = svc.registry.get(args.tenant)

        if args.status:
            result = svc.cache.status(tenant)
            result.update(svc.coordinator.cache_status(tenant))
        elif args.refresh:
            result = svc.coordinator.ensure_fresh(tenant).to_dict()
        elif args.force_refresh:
            result = svc.coordinator.force_refresh(tenant).to_dict()
        else:
            cleared = svc.cache.clear_all(tenant)
            result = {"tenant": tenant.code, "status": "success", "cleared": cleared}
    except ReportsError as e:
        print(json.dumps({"error": e.message}, indent=2))
        return 1

    print(json.dumps(result, indent=2))
    return 0 if "error" not in result else 1


if __name__ == "__main__":
    sys.exit(main())
