import datetime as dt
from typing import Annotated, Any, Self
from pydantic import BaseModel, ConfigDict, StringConstraints

# Rejects empty and whitespace-only identifiers
NonBlankStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]


def utc_now() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


class FrozenModel(BaseModel):
    """
    Base for every engine value object.

    Instances are immutable; "updates" go through `evolve`, which re-runs
    validation on a brand-new instance.
    """
    model_config = ConfigDict(
        frozen=True,
        extra='forbid',
        populate_by_name=True,
    )

    def evolve(self, **changes: Any) -> Self:
        """Return a validated copy with `changes` applied."""
        values = {name: getattr(self, name) for name in type(self).model_fields}
        values.update(changes)
        return type(self)(**values)
