"""
Database initialization script.
"""
from tripsettle.db.session import init_db

# Import all models so SQLAlchemy can register them
from tripsettle.models import (  # noqa: F401
    User, Trip, TripParticipant, Expense, ExpenseSplit, Settlement
)

if __name__ == "__main__":
    print("Initializing database...")
    init_db()
    print("Database initialized successfully!")
