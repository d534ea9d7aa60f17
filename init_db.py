"""
Initialize database tables for the SQL storage backend.

Set RESET_DB=1 environment variable to drop and recreate all tables.
"""
import os

from gdpr_checker import create_app, db


def init_db():
    """Create all database tables."""
    app = create_app(os.getenv('FLASK_ENV', 'production'), overrides={'STORAGE_BACKEND': 'sql'})

    with app.app_context():
        if os.getenv('RESET_DB', '').strip() in ('1', 'true', 'yes'):
            print("RESET_DB is set - dropping all tables...")
            db.drop_all()
            print("Tables dropped.")

        print("Creating database tables...")
        db.create_all()
        print(f"Database tables created: {', '.join(sorted(db.metadata.tables))}")


if __name__ == '__main__':
    init_db()
