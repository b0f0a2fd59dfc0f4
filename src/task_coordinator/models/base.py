from pydantic import BaseModel, ConfigDict


class ModelBase(BaseModel):
    """
    Base class for all task-coordinator models.

    Enforces strict validation, forbids unknown fields,
    and enables assignment-time validation.
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
        frozen=False,
    )


LanguageCode = str
OutputKey = str

# Symbolic step inputs resolved from the request itself.
CURRENT_PAGE = "current_page"
USER_MESSAGE = "user_message"
RESERVED_INPUTS = frozenset({CURRENT_PAGE, USER_MESSAGE})
