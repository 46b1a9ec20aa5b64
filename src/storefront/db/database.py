"""Database connection and session management"""
from fastapi import Request
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator
import logging

logger = logging.getLogger(__name__)

Base = declarative_base()


class Database:
    """
    Engine and session factory owned by the application lifespan.
    
    Built once at startup, stored on ``app.state.db`` and disposed at
    shutdown.
    """
    
    def __init__(self, database_url: str):
        logger.info("Initializing database connection")
        
        self.url = database_url
        self.engine = self._create_engine(database_url)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)
        
        logger.info("Database connection initialized")
    
    @staticmethod
    def _create_engine(database_url: str) -> Engine:
        if not database_url.startswith("sqlite"):
            return create_engine(
                database_url,
                pool_pre_ping=True,
                pool_size=5,
                max_overflow=10,
                echo=False
            )
        
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # Every session must see the same in-memory database
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, **kwargs)
        
        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
        
        return engine
    
    def create_tables(self):
        """Create all tables"""
        # Register every model on Base.metadata
        from storefront import models  # noqa: F401
        
        logger.info("Creating database tables")
        Base.metadata.create_all(bind=self.engine)
        logger.info("Database tables created")
    
    def session(self) -> Session:
        return self.SessionLocal()
    
    def ping(self):
        with self.engine.connect() as connection:
            connection.execute(text("SELECT 1"))
    
    def dispose(self):
        logger.info("Disposing database engine")
        self.engine.dispose()


def get_db(request: Request) -> Generator[Session, None, None]:
    """Dependency for getting a database session"""
    db = request.app.state.db.session()
    try:
        yield db
    finally:
        db.close()
