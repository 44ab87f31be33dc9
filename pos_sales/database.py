"""Database configuration and initialization."""
from sqlalchemy import create_engine
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Create SQLAlchemy base
Base = declarative_base()

# Global session and engine
engine = None
db_session = None


def _engine_options(app):
    """Build create_engine kwargs for the configured backend."""
    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    options = {'echo': app.config.get('SQLALCHEMY_ECHO', False)}

    if database_uri.startswith('sqlite'):
        # In-memory SQLite must share one connection across the session registry
        options['connect_args'] = {'check_same_thread': False}
        if database_uri in ('sqlite://', 'sqlite:///:memory:'):
            options['poolclass'] = StaticPool
        return options

    options.update(
        pool_pre_ping=True,  # Enable connection health checks
        pool_size=app.config.get('SQLALCHEMY_POOL_SIZE', 10),
        max_overflow=app.config.get('SQLALCHEMY_MAX_OVERFLOW', 20)
    )
    return options


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    engine = create_engine(app.config['SQLALCHEMY_DATABASE_URI'], **_engine_options(app))

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )

    if app.config.get('AUTO_CREATE_TABLES'):
        create_tables()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_tables():
    """Create all tables known to the models package."""
    import pos_sales.models  # noqa: F401 - registers mappers on Base.metadata
    Base.metadata.create_all(bind=engine)


def drop_tables():
    """Drop all tables known to the models package."""
    import pos_sales.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session
