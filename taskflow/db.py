from datetime import datetime, UTC

from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy
from werkzeug.security import generate_password_hash

from .models import UserRole, new_id

# SQLAlchemy instance
db = SQLAlchemy()


class UserDB(db.Model, UserMixin):
    __tablename__ = 'users'
    id = db.Column(db.String(64), primary_key=True)
    name = db.Column(db.String(120), nullable=True)
    # stored lower-cased; uniqueness is case-insensitive
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    image = db.Column(db.String(400), nullable=True)
    role = db.Column(db.String(20), nullable=False, default=UserRole.USER.value)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(UTC))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC))

    @property
    def is_admin(self):
        return self.role == UserRole.ADMIN.value

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'image': self.image,
            'role': self.role,
        }


def find_user_by_email(email):
    return UserDB.query.filter(db.func.lower(UserDB.email) == (email or '').strip().lower()).first()


# Utility seed for first admin user if none exists
def ensure_admin_user(db_session, password):
    if not UserDB.query.filter_by(role=UserRole.ADMIN.value).first():
        u = UserDB(id=new_id('user'), name='Administrator', email='admin@taskflow.local',
                   password_hash=generate_password_hash(password), role=UserRole.ADMIN.value)
        db_session.add(u)
        db_session.commit()
        return u
    return None
