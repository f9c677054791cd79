import logging
import psycopg2
import psycopg2.extras
from flask import current_app
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import text

db = SQLAlchemy()

logger = logging.getLogger(__name__)

VECTOR_INDEX_NAME = "idx_posts_embedding_hnsw"


def init_db(app):
    """
    Bind SQLAlchemy to the app and create the schema.

    On PostgreSQL also enables pgvector, turns posts.embedding into a
    vector column and builds the HNSW cosine index. Safe to run twice.
    """
    db.init_app(app)
    with app.app_context():
        postgres = is_postgres()
        if postgres:
            _enable_pgvector(app)
        db.create_all()
        logger.info("[DB] All tables created successfully.")
        if postgres:
            ensure_vector_schema(app.config["EMBEDDING_DIMENSIONS"])


def is_postgres() -> bool:
    """True when the bound engine speaks PostgreSQL (pgvector available)."""
    return db.engine.dialect.name == "postgresql"


def _enable_pgvector(app):
    """Create the pgvector extension if it does not already exist."""
    with app.app_context():
        try:
            db.session.execute(text("CREATE EXTENSION IF NOT EXISTS vector;"))
            db.session.commit()
            logger.info("[DB] pgvector extension enabled.")
        except Exception as e:
            db.session.rollback()
            logger.warning(f"[DB] Could not enable pgvector extension: {e}")


def get_raw_connection():
    """
    Raw psycopg2 connection for DDL that needs cursor-level control
    (ALTER TABLE, index creation). Rows come back as dicts.
    """
    return psycopg2.connect(
        current_app.config["SQLALCHEMY_DATABASE_URI"],
        cursor_factory=psycopg2.extras.RealDictCursor,
    )


def ensure_vector_schema(dimensions: int):
    """Patch posts.embedding to vector(dimensions) and add the HNSW index."""
    conn = get_raw_connection()
    try:
        _patch_vector_column(conn, dimensions)
        _create_vector_index(conn)
    except Exception as e:
        conn.rollback()
        logger.warning(f"[DB] Skipping vector setup (pgvector not installed?): {e}")
    finally:
        conn.close()


def _patch_vector_column(conn, dimensions: int):
    # SQLAlchemy declares the column as Text; pgvector reports USER-DEFINED
    with conn.cursor() as cur:
        cur.execute("""
            SELECT data_type
            FROM information_schema.columns
            WHERE table_name = 'posts'
              AND column_name = 'embedding';
        """)
        row = cur.fetchone()
        if row is None:
            logger.warning("[DB] posts.embedding column not found.")
            return
        if row["data_type"] == "USER-DEFINED":
            logger.info("[DB] posts.embedding is already a vector column.")
            return

        cur.execute(f"""
            ALTER TABLE posts
            ALTER COLUMN embedding TYPE vector({int(dimensions)})
            USING embedding::vector;
        """)
    conn.commit()
    logger.info(f"[DB] posts.embedding patched to vector({dimensions}).")


def _create_vector_index(conn):
    # vector_cosine_ops matches the <=> operator used for related posts
    with conn.cursor() as cur:
        cur.execute(f"""
            CREATE INDEX IF NOT EXISTS {VECTOR_INDEX_NAME}
            ON posts
            USING hnsw (embedding vector_cosine_ops)
            WITH (m = 16, ef_construction = 64);
        """)
    conn.commit()
    logger.info(f"[DB] HNSW index {VECTOR_INDEX_NAME} ready.")
