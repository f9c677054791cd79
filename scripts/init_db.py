"""
init_db.py — One-time database initialization script.

Creates the tables and, on PostgreSQL, the pgvector extension, the
vector(EMBEDDING_DIMENSIONS) embedding column and its HNSW index.

Usage:
    python scripts/init_db.py
"""

import sys
import os
import logging

# Add backend to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "backend"))

from dotenv import load_dotenv
load_dotenv(os.path.join(os.path.dirname(__file__), "..", ".env"))

from flask import Flask
from config import get_config
from database import init_db
import models  # noqa: F401  — registers the tables with SQLAlchemy


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)-8s  %(message)s")

    # Bare app: no blueprints, no embedding service (OPENAI_API_KEY not needed)
    app = Flask(__name__)
    app.config.from_object(get_config())

    print("=" * 60)
    print(" Blog — Database Initialisation")
    print(f" Embedding dimensions: {app.config['EMBEDDING_DIMENSIONS']}")
    print("=" * 60)

    init_db(app)

    print("=" * 60)
    print(" Database initialisation complete.")
    print("=" * 60)


if __name__ == "__main__":
    main()
