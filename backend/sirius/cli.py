"""Management CLI for wizard maintenance.

Usage:
    python -m sirius.cli cleanup-reports [--test]   # Prune expired report rows
    python -m sirius.cli check-registry             # Validate wizard step tables
    python -m sirius.cli list-types                 # Show registered wizard types
"""

import asyncio
import sys

from sirius.database import async_session
from sirius.services.report_cleanup import delete_expired_reports
from sirius.wizards.registry import check_registry_consistency, wizard_registry


async def _cleanup(mode: str) -> dict:
    async with async_session() as db:
        summary = await delete_expired_reports(db, mode)
        await db.commit()
        return summary


def cleanup_reports(test: bool = False):
    summary = asyncio.run(_cleanup("test" if test else "live"))
    verb = "Would delete" if test else "Deleted"
    print(f"  {verb} {summary['rowsDeleted']} rows across {summary['wizardsAffected']} wizard(s)")
    for retention, count in sorted(summary["byRetention"].items()):
        print(f"    {retention}: {count}")


def check_registry() -> int:
    problems = check_registry_consistency()
    for p in problems:
        print(f"  {p}")
    print("  OK" if not problems else f"\n{len(problems)} problem(s)")
    return 1 if problems else 0


def list_types():
    for name in wizard_registry.names():
        wizard = wizard_registry.get(name)
        kind = "report" if wizard.is_report else "feed"
        gate = f" [{wizard.required_component}]" if wizard.required_component else ""
        print(f"  {name} ({kind}){gate}")


if __name__ == "__main__":
    cmd = sys.argv[1] if len(sys.argv) > 1 else ""
    if cmd == "cleanup-reports":
        cleanup_reports(test="--test" in sys.argv[2:])
    elif cmd == "check-registry":
        sys.exit(check_registry())
    elif cmd == "list-types":
        list_types()
    else:
        print("Usage: python -m sirius.cli [cleanup-reports [--test]|check-registry|list-types]")
