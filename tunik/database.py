"""Database configuration and initialization."""
from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import scoped_session, sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from tunik.exceptions import ConflictError, InternalError, ReferentialConstraintError

# Create SQLAlchemy base
Base = declarative_base()

# Global session and engine
engine = None
db_session = None

# SQLSTATE / SQLite extended code for a foreign key violation
PG_FOREIGN_KEY_VIOLATION = '23503'
SQLITE_FOREIGN_KEY_VIOLATION = 'SQLITE_CONSTRAINT_FOREIGNKEY'
PG_UNIQUE_VIOLATION = '23505'
SQLITE_UNIQUE_VIOLATIONS = ('SQLITE_CONSTRAINT_PRIMARYKEY', 'SQLITE_CONSTRAINT_UNIQUE')


def _engine_options(app, database_uri):
    """Pool options per backend (SQLite in-memory needs a single shared connection)."""
    options = {'echo': app.config.get('SQLALCHEMY_ECHO', False)}
    if database_uri.startswith('sqlite'):
        options['connect_args'] = {'check_same_thread': False}
        if database_uri in ('sqlite://', 'sqlite:///:memory:'):
            options['poolclass'] = StaticPool
    else:
        options.update(
            pool_pre_ping=True,  # Enable connection health checks
            pool_size=app.config.get('SQLALCHEMY_POOL_SIZE', 10),
            max_overflow=app.config.get('SQLALCHEMY_MAX_OVERFLOW', 20),
        )
    return options


def init_db(app):
    """Initialize database connection."""
    global engine, db_session

    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    engine = create_engine(database_uri, **_engine_options(app, database_uri))

    if engine.dialect.name == 'sqlite':
        @event.listens_for(engine, 'connect')
        def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute('PRAGMA foreign_keys=ON')
            cursor.close()

    db_session = scoped_session(
        sessionmaker(autocommit=False, autoflush=False, bind=engine)
    )

    Base.query = db_session.query_property()

    if app.config.get('CREATE_TABLES'):
        import tunik.models  # noqa: F401 - register mappers on Base.metadata
        Base.metadata.create_all(bind=engine)

    # Register teardown
    @app.teardown_appcontext
    def shutdown_session(exception=None):
        """Close database session and rollback on error."""
        if exception:
            db_session.rollback()
        db_session.remove()


def get_session():
    """Get database session."""
    return db_session


def is_foreign_key_violation(error: IntegrityError) -> bool:
    """True when the driver reports a foreign key violation."""
    orig = getattr(error, 'orig', None)
    if getattr(orig, 'pgcode', None) == PG_FOREIGN_KEY_VIOLATION:
        return True
    return getattr(orig, 'sqlite_errorname', None) == SQLITE_FOREIGN_KEY_VIOLATION


def is_unique_violation(error: IntegrityError) -> bool:
    """True when the driver reports a primary key or unique constraint violation."""
    orig = getattr(error, 'orig', None)
    if getattr(orig, 'pgcode', None) == PG_UNIQUE_VIOLATION:
        return True
    return getattr(orig, 'sqlite_errorname', None) in SQLITE_UNIQUE_VIOLATIONS


def storage_error(error: SQLAlchemyError, action: str):
    """
    Translate a storage failure into the application error raised to callers.

    Foreign key violations become ReferentialConstraintError, duplicate keys
    (a concurrent insert of the same detail line) become ConflictError and
    everything else is an InternalError. The driver exception stays in the log only.
    """
    if isinstance(error, IntegrityError) and is_foreign_key_violation(error):
        return ReferentialConstraintError(
            f'No se puede {action} porque está asociado a otros registros.'
        )
    if isinstance(error, IntegrityError) and is_unique_violation(error):
        return ConflictError(f'No se puede {action} porque el registro ya existe.')
    return InternalError(f'Error al {action}.')
