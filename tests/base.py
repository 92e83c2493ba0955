import os
import unittest

from sqlalchemy import JSON, Column, DateTime, Integer, MetaData, String, Table, create_engine, delete, func
from sqlalchemy.pool import StaticPool

# Ensure settings can be initialized in test environments
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from engdesk.services.data_access import DataStore

metadata = MetaData()

projects = Table(
    "projects",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("number", Integer, nullable=False),
    Column("name", String(200), nullable=False),
    Column("type", String(50), nullable=True),
    Column("status", String(30), nullable=False),
    Column("client_id", Integer, nullable=True),
    Column("created_at", DateTime, nullable=False, server_default=func.current_timestamp()),
)

clients = Table(
    "clients",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False, unique=True),
)

proposals = Table(
    "proposals",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(200), nullable=False),
    Column("contacts", JSON, nullable=True),
)


class SqliteStoreTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.engine = create_engine(
            "sqlite+pysqlite:///:memory:",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        metadata.create_all(cls.engine)
        cls.store = DataStore(cls.engine)

    @classmethod
    def tearDownClass(cls):
        metadata.drop_all(cls.engine)
        cls.engine.dispose()

    def setUp(self):
        with self.engine.begin() as conn:
            conn.execute(delete(projects))
            conn.execute(delete(clients))
            conn.execute(delete(proposals))

    def seed_projects(self, *rows):
        with self.engine.begin() as conn:
            conn.execute(projects.insert(), [dict(row) for row in rows])
