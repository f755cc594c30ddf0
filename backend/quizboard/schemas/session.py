"""Session schema: the opaque credential handed to the engine."""

from datetime import datetime

from pydantic import Field

from quizboard.schemas.common import CamelModel


class SessionRead(CamelModel):
    """A logged-in user session. ``username`` doubles as the attempt's userId."""

    username: str = Field(min_length=1)
    login_time: datetime
