#!/usr/bin/env python3
"""
Reset the invoicer database: drop the invoice tables, recreate them from the
ORM models and forget the Alembic revision. Optionally wipes locally stored
logo uploads as well.

Usage:
    python scripts/reset_database.py [--yes] [--clear-uploads]
"""

import argparse
import os
import shutil
import sys

# Run from backend/ or backend/scripts/
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from dotenv import load_dotenv
load_dotenv(os.path.join(os.path.dirname(os.path.dirname(__file__)), '.env'))

from sqlalchemy import inspect, text
from sqlalchemy.orm import Session
from invoicer.config import settings
from invoicer.database import engine, Base
from invoicer.models import Invoice, InvoiceItem
import logging

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def count_rows() -> dict:
    """Row counts of the invoice tables that currently exist"""
    existing = set(inspect(engine).get_table_names())
    counts = {}
    with Session(engine) as session:
        for model in (Invoice, InvoiceItem):
            if model.__tablename__ in existing:
                counts[model.__tablename__] = session.query(model).count()
    return counts


def clear_local_uploads():
    upload_dir = os.path.abspath(settings.local_storage_dir)
    if not os.path.isdir(upload_dir):
        logger.info(f"No local uploads at {upload_dir}")
        return
    removed = 0
    for name in os.listdir(upload_dir):
        path = os.path.join(upload_dir, name)
        if os.path.isdir(path):
            shutil.rmtree(path)
        else:
            os.remove(path)
        removed += 1
    logger.info(f"Removed {removed} uploaded file(s) from {upload_dir}")


def reset_database(confirmed: bool = False, clear_uploads: bool = False):
    """Drop and recreate every invoicer table"""
    counts = count_rows()
    logger.warning(f"Target database: {engine.url.render_as_string(hide_password=True)}")
    for table, count in counts.items():
        logger.warning(f"  {table}: {count} row(s) will be deleted")

    if not confirmed:
        answer = input("Type 'yes' to drop all invoice data: ")
        if answer.strip().lower() != "yes":
            logger.info("Reset cancelled.")
            return

    try:
        Base.metadata.drop_all(bind=engine)
        Base.metadata.create_all(bind=engine)
        logger.info(f"Recreated tables: {', '.join(sorted(Base.metadata.tables))}")

        with engine.begin() as conn:
            conn.execute(text("DROP TABLE IF EXISTS alembic_version"))
        logger.info("Cleared alembic_version; run 'alembic stamp head' to mark the schema current.")
    except Exception as e:
        logger.error(f"Database reset failed: {str(e)}", exc_info=True)
        raise

    if clear_uploads:
        clear_local_uploads()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Drop and recreate the invoicer database tables")
    parser.add_argument("--yes", action="store_true", help="skip the confirmation prompt")
    parser.add_argument("--clear-uploads", action="store_true", help="also delete locally stored logo uploads")
    args = parser.parse_args()
    reset_database(confirmed=args.yes, clear_uploads=args.clear_uploads)
