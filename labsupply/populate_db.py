# labsupply/populate_db.py
"""Seed a fresh database: bootstrap super admin plus an optional catalog CSV.

Usage: python -m labsupply.populate_db [catalog.csv]
"""
import logging
import sys
from pathlib import Path

from labsupply.config import settings
from labsupply.database import SessionLocal, init_db
from labsupply.utils.bootstrap import ensure_super_admin
from labsupply.utils.bulk_import import BulkImporter, BatchRejected
from labsupply.utils.csv_parser import parse_csv

logger = logging.getLogger(__name__)


def load_catalog(db, csv_path: Path):
    """Import a catalog file through the same path the admin upload uses."""
    headers, rows = parse_csv(csv_path.read_text(encoding="utf-8-sig"))
    return BulkImporter(db).run(headers, rows, file_name=csv_path.name)


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format="%(levelname)s %(message)s")
    init_db()

    db = SessionLocal()
    try:
        admin = ensure_super_admin(db, settings.BOOTSTRAP_ADMIN_EMAIL, settings.BOOTSTRAP_ADMIN_PASSWORD)
        if admin is None:
            logger.warning("BOOTSTRAP_ADMIN_EMAIL/BOOTSTRAP_ADMIN_PASSWORD not set, no super admin created.")

        if argv:
            csv_path = Path(argv[0])
            if not csv_path.exists():
                logger.error("Catalog file %s not found.", csv_path)
                return 1
            try:
                report = load_catalog(db, csv_path)
            except BatchRejected as e:
                logger.error("Catalog file rejected: %s", e)
                return 1
            for result in report.results:
                if not result.success:
                    logger.warning("Row %d (%s): %s", result.row, result.sku, result.error)
            logger.info(
                "Imported %s: %d created, %d failed.",
                csv_path.name, report.summary.created, report.summary.failed,
            )
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
