"""SQLAlchemy models for database integration."""

from flask_sqlalchemy import SQLAlchemy
from sqlalchemy import Column, Enum, ForeignKey, Index, Integer, String, \
    Text, func, text
from sqlalchemy.orm import relationship

db: SQLAlchemy = SQLAlchemy()


class DBUser(db.Model):  # type: ignore
    """
    API user accounts.

    +------------------+--------------+------+-----+---------+----------------+
    | Field            | Type         | Null | Key | Default | Extra          |
    +------------------+--------------+------+-----+---------+----------------+
    | user_id          | int(11)      | NO   | PRI | NULL    | auto_increment |
    | username         | varchar(100) | NO   | UNI |         |                |
    | email            | varchar(255) | NO   | UNI |         |                |
    | password         | varchar(255) | NO   |     |         |                |
    | full_name        | varchar(200) | NO   |     |         |                |
    | twitter_username | varchar(100) | YES  |     | NULL    |                |
    | biography        | text         | YES  |     | NULL    |                |
    | verified         | int(1)       | NO   |     | 0       |                |
    | trusted          | int(1)       | NO   |     | 0       |                |
    | admin            | int(1)       | NO   |     | 0       |                |
    | created          | int(11)      | NO   |     | 0       |                |
    +------------------+--------------+------+-----+---------+----------------+
    """

    __tablename__ = 'users'

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(100), nullable=False, unique=True, index=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)
    """Current or legacy encoding of the password. Never plaintext."""
    full_name = Column(String(200), nullable=False)
    twitter_username = Column(String(100), nullable=True)
    biography = Column(Text, nullable=True)
    verified = Column(Integer, nullable=False, server_default=text("'0'"))
    trusted = Column(Integer, nullable=False, server_default=text("'0'"))
    admin = Column(Integer, nullable=False, server_default=text("'0'"))
    created = Column(Integer, nullable=False, server_default=text("'0'"))
    """Epoch time."""


# Email addresses are unique regardless of case.
Index('ix_users_email_lower', func.lower(DBUser.email), unique=True)


class DBClient(db.Model):  # type: ignore
    """OAuth clients allowed to talk to the API."""

    __tablename__ = 'oauth_clients'

    client_id = Column(String(100), primary_key=True)
    client_secret = Column(String(255), nullable=False)
    """SHA-256 hex digest of the secret."""
    name = Column(String(255), nullable=False, server_default=text("''"))
    enable_password_grant = Column(Integer, nullable=False,
                                   server_default=text("'0'"))


class DBAccessToken(db.Model):  # type: ignore
    """Bearer tokens minted by the password grant."""

    __tablename__ = 'oauth_access_tokens'

    access_token = Column(String(64), primary_key=True)
    user_id = Column(ForeignKey('users.user_id'), nullable=False, index=True)
    client_id = Column(ForeignKey('oauth_clients.client_id'), nullable=False)
    scope = Column(String(255), nullable=False, server_default=text("''"))
    issued = Column(Integer, nullable=False)
    """Epoch time."""
    expires = Column(Integer, nullable=False)
    """Epoch time."""
    revoked = Column(Integer, nullable=False, server_default=text("'0'"))

    user = relationship('DBUser')
    client = relationship('DBClient')


class DBUserToken(db.Model):  # type: ignore
    """Single-use email verification and password reset tokens."""

    __tablename__ = 'user_tokens'

    token = Column(String(64), primary_key=True)
    user_id = Column(ForeignKey('users.user_id'), nullable=False, index=True)
    purpose = Column(Enum('email_verify', 'password_reset',
                          name='user_token_purpose'), nullable=False)
    issued = Column(Integer, nullable=False)
    expires = Column(Integer, nullable=False)
    consumed = Column(Integer, nullable=False, server_default=text("'0'"))

    user = relationship('DBUser')
