#!/usr/bin/env python3
"""
Check every student's invoice chain and repair carried balances.

An invoice must carry the balance of the invoice before it (the first one
carries the student's opening balance), and its stored total_billed and
balance must match its lines and payments. Chains broken by an interrupted
update are recomputed in order; fees and payments are not touched.

Usage:
    python scripts/repair_ledgers.py --dry-run            # report only
    python scripts/repair_ledgers.py --confirm            # repair every broken chain
    python scripts/repair_ledgers.py --confirm --student 42
"""

import asyncio
import sys
from pathlib import Path

# Add project root to PYTHONPATH
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from school_office.core.config import settings
from school_office.core.database.session import async_session
from school_office.core.exceptions import PartialRepairError
from school_office.modules.invoices.service import InvoiceService
from school_office.modules.students.models import Student


async def find_broken_chains(session: AsyncSession, student_id: int | None = None) -> dict[int, list[str]]:
    """Map student id -> chain problems, for students whose chain is broken."""
    query = select(Student).order_by(Student.id)
    if student_id is not None:
        query = query.where(Student.id == student_id)
    students = (await session.execute(query)).scalars().all()

    service = InvoiceService(session)
    broken: dict[int, list[str]] = {}
    for student in students:
        problems = await service.chain_problems(student.id)
        if problems:
            broken[student.id] = problems
    return broken


async def repair(dry_run: bool, student_id: int | None) -> int:
    async with async_session() as session:
        broken = await find_broken_chains(session, student_id)

    print(f"\nStudents with broken chains: {len(broken)}")
    for sid, problems in broken.items():
        print(f"  student {sid}:")
        for problem in problems:
            print(f"    - {problem}")

    if dry_run or not broken:
        if dry_run and broken:
            print("\nDry run: nothing changed. Use --confirm to repair.")
        return 0

    failures = 0
    for sid in broken:
        # One transaction per student
        async with async_session() as session:
            try:
                result = await InvoiceService(session).repair_student_chain(sid)
            except PartialRepairError as e:
                failures += 1
                print(f"  student {sid}: FAILED at invoice {e.failed_invoice_id} ({e.message})")
                continue
        print(f"  student {sid}: {result.invoices_rewritten} invoice(s) rewritten")
    return failures


async def main():
    import argparse

    parser = argparse.ArgumentParser(description="Check and repair invoice chains")
    parser.add_argument("--dry-run", action="store_true", help="Report broken chains only")
    parser.add_argument("--confirm", action="store_true", help="Repair broken chains")
    parser.add_argument("--student", type=int, default=None, help="Only this student id")
    args = parser.parse_args()

    if not args.dry_run and not args.confirm:
        print("ERROR: pass --dry-run or --confirm")
        sys.exit(1)

    print(f"Environment: {settings.app_env}")
    print(f"Database: {settings.database_url.split('@')[1] if '@' in settings.database_url else 'unknown'}")
    print(f"Mode: {'DRY-RUN' if args.dry_run else 'REPAIR'}")

    failures = await repair(dry_run=args.dry_run, student_id=args.student)
    sys.exit(1 if failures else 0)


if __name__ == "__main__":
    asyncio.run(main())
