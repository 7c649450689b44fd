"""
Request parsing for account operations.

The forms here only turn request parameters into domain objects: they trim
text, tell omitted fields apart from empty ones, and check that the fields a
request cannot do without were sent. Business rules (password acceptability,
uniqueness, email format) are checked once, by the service that performs the
operation.
"""

from typing import Any, List, Optional

from wtforms import Form, PasswordField, StringField
from wtforms.validators import AnyOf, DataRequired

from .. import domain


def strip(value: Any) -> Any:
    """Trim surrounding whitespace, rendering non-text values as text."""
    if value is None:
        return value
    return str(value).strip()


def errors_of(form: Form) -> List[str]:
    """Flatten the errors of a validated form, in field order."""
    return [message for field in form for message in field.errors]


def _present(field: Any) -> Any:
    """The field's data if it was sent at all, otherwise ``ABSENT``."""
    if not field.raw_data:
        return domain.ABSENT
    return field.data if field.data is not None else ''


def _optional(value: Optional[str]) -> Optional[str]:
    return value if value else None


class RegistrationForm(Form):
    """Self-registration of a new account."""

    username = StringField('Username', filters=[strip])
    full_name = StringField('Full name', filters=[strip])
    email = StringField('Email address', filters=[strip])
    password = PasswordField('Password')
    twitter_username = StringField('Twitter username', filters=[strip])
    biography = StringField('Biography', filters=[strip])
    auto_verify_user = StringField('Auto-verify (test platforms only)')

    def to_domain(self) -> domain.AccountRegistration:
        """Generate a :class:`.AccountRegistration` from this form's data."""
        return domain.AccountRegistration(
            username=self.username.data or '',
            full_name=self.full_name.data or '',
            email=self.email.data or '',
            password=self.password.data or '',
            twitter_username=_optional(self.twitter_username.data),
            biography=_optional(self.biography.data),
            auto_verify=self.auto_verify_user.data == 'true'
        )


class ProfileForm(Form):
    """Edits to an existing account. Every field is optional."""

    username = StringField('Username', filters=[strip])
    full_name = StringField('Full name', filters=[strip])
    email = StringField('Email address', filters=[strip])
    password = PasswordField('New password')
    old_password = PasswordField('Current password')
    twitter_username = StringField('Twitter username', filters=[strip])
    biography = StringField('Biography', filters=[strip])

    def to_domain(self) -> domain.AccountUpdate:
        """Generate a :class:`.AccountUpdate` from this form's data."""
        return domain.AccountUpdate(**{
            field.name: _present(field) for field in self
        })


class VerificationForm(Form):
    """Redemption of an email verification token."""

    token = StringField('Token', filters=[strip], validators=[
        DataRequired('Verification token must be supplied')
    ])


class PasswordResetForm(Form):
    """Redemption of a password reset token."""

    token = StringField('Token', filters=[strip], validators=[
        DataRequired('Reset token must be supplied')
    ])
    password = PasswordField('New password', validators=[
        DataRequired('New password must be supplied')
    ])


class PasswordGrantForm(Form):
    """OAuth token request using the password grant."""

    grant_type = StringField('Grant type', filters=[strip], validators=[
        DataRequired("'grant_type' is a required field"),
        AnyOf(['password'], message='Unsupported grant type')
    ])
    client_id = StringField('Client ID', filters=[strip], validators=[
        DataRequired("'client_id' is a required field")
    ])
    client_secret = PasswordField('Client secret', validators=[
        DataRequired("'client_secret' is a required field")
    ])
    username = StringField('Username', filters=[strip], validators=[
        DataRequired("'username' is a required field")
    ])
    password = PasswordField('Password', validators=[
        DataRequired("'password' is a required field")
    ])


class ContactForm(Form):
    """Message sent through the contact endpoint."""

    REQUIRED = ('name', 'email', 'subject', 'comment')

    client_id = StringField('Client ID', filters=[strip])
    client_secret = PasswordField('Client secret')
    name = StringField('Name', filters=[strip])
    email = StringField('Email', filters=[strip])
    subject = StringField('Subject', filters=[strip])
    comment = StringField('Comment', filters=[strip])

    def missing(self) -> List[str]:
        """Names of required fields that are empty."""
        return [name for name in self.REQUIRED if not self[name].data]

    def to_dict(self) -> dict:
        return {name: self[name].data for name in self.REQUIRED}
