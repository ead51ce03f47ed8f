# models.py
"""
Central database models.

The central schema is owned by the downstream CRM; these classes describe the
subset of it that the sheet import writes to. Nothing here migrates the real
database. Relationships are enforced by the importer, not by foreign keys.
"""

import uuid
from datetime import datetime

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import event

db = SQLAlchemy()


def generate_id():
    """Return a 36-character UUID string, the same shape MySQL's UUID() yields."""
    return str(uuid.uuid4())


def enable_sqlite_savepoints(engine):
    """
    Let pysqlite honour SAVEPOINT inside an outer transaction.

    pysqlite defers BEGIN until the first DML statement, which makes the
    first SAVEPOINT start (and its RELEASE commit) the whole transaction.
    Taking over BEGIN ourselves keeps nested rollbacks scoped to one row.
    """
    if engine.dialect.name != 'sqlite':
        return

    @event.listens_for(engine, 'connect')
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, 'begin')
    def _emit_begin(conn):
        conn.exec_driver_sql('BEGIN')


class CentralRecordMixin:
    """Bookkeeping columns carried by every central table."""
    id = db.Column(db.String(36), primary_key=True, default=generate_id)
    created_on = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_on = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    created_by = db.Column(db.String(36))
    updated_by = db.Column(db.String(36))
    deleted = db.Column(db.Integer, nullable=False, default=0)
    version = db.Column(db.Integer, nullable=False, default=0)


class ProfileSatelliteMixin(CentralRecordMixin):
    """A placeholder row the CRM expects before it will render a profile."""
    profile_id = db.Column(db.String(36), nullable=False, index=True)


class Profile(CentralRecordMixin, db.Model):
    __tablename__ = 'profile'

    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    gender = db.Column(db.Integer, nullable=False, default=1)  # 1 male, 2 female
    birthdate = db.Column(db.Date)
    age = db.Column(db.Integer)
    job_text = db.Column(db.String(255))
    post_it = db.Column(db.String(36))  # back-link to post_it.id

    def __repr__(self):
        return f'<Profile {self.first_name} {self.last_name}>'


class ProfileEmail(CentralRecordMixin, db.Model):
    __tablename__ = 'profile_email'

    profile_id = db.Column(db.String(36), nullable=False, index=True)
    address = db.Column(db.String(255), nullable=False, index=True)


class ProfilePhone(CentralRecordMixin, db.Model):
    __tablename__ = 'profile_phone'

    profile_id = db.Column(db.String(36), nullable=False, index=True)
    number = db.Column(db.String(50), nullable=False, index=True)
    branch_id = db.Column(db.Integer)


class HearUsFrom(CentralRecordMixin, db.Model):
    """Lead source reference data. Read-only for the importer."""
    __tablename__ = 'hear_us_from'

    type = db.Column(db.Integer)
    lead_group = db.Column(db.Integer)
    hear_us_from = db.Column(db.String(255), nullable=False, index=True)
    product = db.Column(db.Integer)
    branch = db.Column(db.Integer)
    status = db.Column(db.Integer)
    lead_source_id = db.Column(db.String(255))

    @classmethod
    def find_active(cls, session, value, branch):
        """Return the first non-deleted lead source for a value in a branch."""
        return (session.query(cls)
                .filter(cls.hear_us_from == value,
                        cls.branch == branch,
                        cls.deleted == 0)
                .first())

    def __repr__(self):
        return f'<HearUsFrom {self.hear_us_from} branch={self.branch}>'


class Hit(CentralRecordMixin, db.Model):
    """Attribution event tying a profile to the channel that brought it in."""
    __tablename__ = 'hit'

    WEBSITE = 3

    profile_id = db.Column(db.String(36), nullable=False, index=True)
    hear_us_from = db.Column(db.String(36), nullable=False)
    hit_type = db.Column(db.Integer, nullable=False, default=WEBSITE)
    branch = db.Column(db.Integer)


class Followup(CentralRecordMixin, db.Model):
    __tablename__ = 'followup'

    todo_date = db.Column(db.Date, nullable=False)
    todo_time = db.Column(db.Time, nullable=False)
    method = db.Column(db.Integer, nullable=False)
    result = db.Column(db.Integer, nullable=False)
    assigned_consultant = db.Column(db.String(36))
    product = db.Column(db.Integer)
    branch = db.Column(db.Integer)
    profile_id = db.Column(db.String(36), nullable=False, index=True)
    hit_id = db.Column(db.String(36))
    followup_type = db.Column(db.Integer, nullable=False, default=1)


class ProfileProductLead(CentralRecordMixin, db.Model):
    __tablename__ = 'profile_product_lead'

    status = db.Column(db.Integer, nullable=False, default=1)
    product = db.Column(db.Integer, nullable=False)
    profile_id = db.Column(db.String(36), nullable=False, index=True)
    hit_id = db.Column(db.String(36))


class PostIt(CentralRecordMixin, db.Model):
    __tablename__ = 'post_it'

    comment = db.Column(db.Text, nullable=False)


class ProfilePref(ProfileSatelliteMixin, db.Model):
    __tablename__ = 'profile_pref'


class ProfilePersonalInfo(ProfileSatelliteMixin, db.Model):
    __tablename__ = 'profile_personal_info'


class ProfileInterest(ProfileSatelliteMixin, db.Model):
    __tablename__ = 'profile_interest'


class ProfileExpectation(ProfileSatelliteMixin, db.Model):
    __tablename__ = 'profile_expectation'


class ProfileConfidentialInfo(ProfileSatelliteMixin, db.Model):
    __tablename__ = 'profile_confidential_info'


class ProfileSpokenLanguage(ProfileSatelliteMixin, db.Model):
    __tablename__ = 'profile_spoken_language'

    language = db.Column(db.Integer, nullable=False, default=1)


class ProfileInterestedInDating(ProfileSatelliteMixin, db.Model):
    __tablename__ = 'profile_interested_in_dating'

    interested_in_dating = db.Column(db.Integer, nullable=False, default=1)


class ProfilePrefCallTiming(ProfileSatelliteMixin, db.Model):
    __tablename__ = 'profile_pref_call_timing'


class ProfilePrefDatesTiming(ProfileSatelliteMixin, db.Model):
    __tablename__ = 'profile_pref_dates_timing'


# Every profile needs exactly one row in each of these before the CRM can open it.
SATELLITE_MODELS = (
    ProfilePref,
    ProfilePersonalInfo,
    ProfileInterest,
    ProfileExpectation,
    ProfileConfidentialInfo,
    ProfileSpokenLanguage,
    ProfileInterestedInDating,
    ProfilePrefCallTiming,
    ProfilePrefDatesTiming,
)
