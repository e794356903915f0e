from flask_wtf import FlaskForm
from wtforms import StringField, PasswordField, IntegerField, FloatField
from wtforms.validators import DataRequired, Length, NumberRange, Optional, ValidationError


class ApiForm(FlaskForm):
    """Form bound to the JSON request body. The API is stateless, so no CSRF token."""

    class Meta:
        csrf = False


class RegisterForm(ApiForm):
    username = StringField('Username', validators=[DataRequired(), Length(min=3, max=32)])
    password = PasswordField('Password', validators=[DataRequired(), Length(min=6, max=128)])


class LoginForm(ApiForm):
    username = StringField('Username', validators=[DataRequired()])
    password = PasswordField('Password', validators=[DataRequired()])


class CommitCrimeForm(ApiForm):
    crime_id = IntegerField('Crime ID', validators=[NumberRange(min=1)])


class BankForm(ApiForm):
    amount = IntegerField('Amount', validators=[NumberRange(min=1)])


class BuyCarForm(ApiForm):
    car_id = IntegerField('Car ID', validators=[NumberRange(min=1)])


class BuyPropertyForm(ApiForm):
    property_id = IntegerField('Property ID', validators=[NumberRange(min=1)])


# --- Admin ---

def check_reward_bounds(form, field):
    low = form.min_reward.data
    high = form.max_reward.data
    if low is not None and high is not None and low > high:
        raise ValidationError('Maximum reward must be at least the minimum reward.')


def not_blank_if_given(form, field):
    if field.raw_data and not str(field.raw_data[0]).strip():
        raise ValidationError('Name cannot be blank.')


class CrimeForm(ApiForm):
    name = StringField('Name', validators=[DataRequired(), Length(max=100)])
    min_reward = IntegerField('Minimum reward', validators=[NumberRange(min=0)])
    max_reward = IntegerField('Maximum reward', validators=[NumberRange(min=0), check_reward_bounds])
    success_rate = FloatField('Success rate', validators=[NumberRange(min=0.0, max=1.0)])
    cooldown_seconds = IntegerField('Cooldown (seconds)', validators=[NumberRange(min=0)])
    xp_reward = IntegerField('XP reward', validators=[NumberRange(min=0)])


class EditCrimeForm(ApiForm):
    name = StringField('Name', validators=[not_blank_if_given, Length(max=100)])
    min_reward = IntegerField('Minimum reward', validators=[Optional(), NumberRange(min=0)])
    max_reward = IntegerField('Maximum reward', validators=[Optional(), NumberRange(min=0)])
    success_rate = FloatField('Success rate', validators=[Optional(), NumberRange(min=0.0, max=1.0)])
    cooldown_seconds = IntegerField('Cooldown (seconds)', validators=[Optional(), NumberRange(min=0)])
    xp_reward = IntegerField('XP reward', validators=[Optional(), NumberRange(min=0)])


class RankForm(ApiForm):
    label = StringField('Label', validators=[DataRequired(), Length(max=64)])
    min_xp = IntegerField('Minimum XP', validators=[NumberRange(min=0)])


class ResetCrimeCooldownForm(ApiForm):
    crime_id = IntegerField('Crime ID', validators=[Optional(), NumberRange(min=1)])


class EditPlayerForm(ApiForm):
    money = IntegerField('Money', validators=[Optional(), NumberRange(min=0)])
    bank_balance = IntegerField('Bank balance', validators=[Optional(), NumberRange(min=0)])
    xp = IntegerField('XP', validators=[Optional(), NumberRange(min=0)])
    version = IntegerField('Version', validators=[Optional(), NumberRange(min=1)])
