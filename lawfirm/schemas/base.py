"""
schemas/base.py
---------------
Shared Pydantic base: JSON bodies use camelCase keys, Python uses snake_case.
"""

from typing import Annotated

from email_validator import EmailNotValidError, validate_email
from pydantic import AfterValidator, BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def check_email(value: str) -> str:
    """Syntax check only. The address is kept exactly as submitted, domain case included."""
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as exc:
        raise ValueError(str(exc)) from exc
    return value


# Accounts and invitations match email addresses case-sensitively
EmailAddress = Annotated[str, AfterValidator(check_email)]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
