# taskmarket/blueprints/auth/forms.py
# Flask-WTF reads JSON request bodies as form data, so these back the JSON API too.
from __future__ import annotations

from flask_wtf import FlaskForm
from wtforms import (
    StringField,
    PasswordField,
    BooleanField,
)
from wtforms.validators import (
    DataRequired,
    Email,
    Length,
    EqualTo,
    Optional as Opt,
    Regexp,
    URL,
    ValidationError,
)

from ...models.user import User


# ---------------------
# Validators / Helpers
# ---------------------

PASSWORD_VALIDATORS = [
    DataRequired(),
    Length(min=8, message="Password must be at least 8 characters."),
    # At least one letter and number
    Regexp(r"^(?=.*[A-Za-z])(?=.*\d).+$", message="Use letters and numbers."),
]


def _email_exists(email: str) -> bool:
    return User.query.filter(User.email == email.lower().strip()).first() is not None


# -------------
# Auth Forms
# -------------

class RegisterForm(FlaskForm):
    full_name = StringField("Full name", validators=[DataRequired(), Length(max=120)])
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField("Password", validators=PASSWORD_VALIDATORS)
    password2 = PasswordField("Confirm password", validators=[DataRequired(), EqualTo("password", message="Passwords must match.")])

    def validate_email(self, field):  # type: ignore[override]
        if _email_exists(field.data):
            raise ValidationError("This email is already registered.")


class LoginForm(FlaskForm):
    email = StringField("Email", validators=[DataRequired(), Email(), Length(max=255)])
    password = PasswordField("Password", validators=[DataRequired()])
    remember = BooleanField("Keep me signed in")


class ProfileForm(FlaskForm):
    full_name = StringField("Full name", validators=[Opt(), Length(max=120)])
    avatar_url = StringField("Avatar URL", validators=[Opt(), URL(), Length(max=512)])
