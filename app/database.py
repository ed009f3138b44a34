"""Database configuration and initialization."""
from sqlalchemy import BigInteger, Integer, create_engine
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# Create SQLAlchemy base
Base = declarative_base()

# BIGINT primary keys do not autoincrement on SQLite (tests)
BigIntPK = BigInteger().with_variant(Integer, 'sqlite')

# Global session and engine
engine = None
db_session = None


def _engine_options(app):
    """Pool settings per backend; in-memory SQLite must share one connection."""
    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    options = {'echo': app.config.get('SQLALCHEMY_ECHO', False)}

    if database_uri.startswith('sqlite'):
        options.update(
            connect_args={'check_same_thread': False},
            poolclass=StaticPool,
        )
    else:
        options.update(
            pool_pre_ping=True,  # Enable connection health checks
            pool_size=10,
            max_overflow=20,
        )
    return options


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    engine = create_engine(app.config['SQLALCHEMY_DATABASE_URI'], **_engine_options(app))

    db_session = scoped_session(
        sessionmaker(
            autocommit=False,
            autoflush=False,
            expire_on_commit=app.config.get('SQLALCHEMY_EXPIRE_ON_COMMIT', True),
            bind=engine,
        )
    )

    Base.query = db_session.query_property()

    if app.config.get('DB_CREATE_ALL'):
        create_all()

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def create_all():
    """Create all tables (used by `flask init-db` and the test config)."""
    import app.models  # noqa: F401  register mappers
    Base.metadata.create_all(bind=engine)


def get_session():
    """Get database session."""
    return db_session
