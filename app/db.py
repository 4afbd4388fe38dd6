import logging

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base

from app.config import DATABASE_URL, DB_BUSY_TIMEOUT

logger = logging.getLogger(__name__)

Base = declarative_base()


def create_db_engine(url: str):
    """
    Build an engine for `url`.

    SQLite connections take the write lock at BEGIN (BEGIN IMMEDIATE) so that
    concurrent booking transactions queue on the busy timeout instead of
    failing when a reader tries to upgrade to a writer.
    """
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)

    engine = create_engine(
        url, connect_args={"check_same_thread": False, "timeout": DB_BUSY_TIMEOUT}
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, _record):
        # let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    return engine


engine = create_db_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    # Import models here to create tables
    from app.models import Hospital, Doctor, Clinic
    Base.metadata.create_all(bind=engine)

    # Seed a minimal directory if empty
    from sqlalchemy.orm import Session
    db: Session = SessionLocal()
    try:
        if not db.query(Hospital).first():
            db.add(Hospital(hospital_id=1, name="City General Hospital", location="Downtown",
                            type="Multi-Specialty", max_bookings_per_slot=5))
        if not db.query(Doctor).first():
            db.add_all([
                Doctor(doctor_id=101, name="Dr. Asha Rao", specialization="Cardiology", hospital_id=1),
                Doctor(doctor_id=102, name="Dr. Luis Ortega", specialization="Pediatrics", hospital_id=1),
            ])
        if not db.query(Clinic).first():
            db.add(Clinic(clinic_id=501, name="Lakeside Family Clinic", doctor_name="Dr. Mei Lin",
                          specialization="General Practice", location="Lakeside", max_bookings_per_slot=3))
        db.commit()
        logger.info("Database initialized")
    finally:
        db.close()
