import json
from enum import Enum
from typing import List, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic.config import ConfigDict

E = TypeVar('E', bound='RichEnum')


###################################
# BASE MODELS
###################################
class RichBaseModel(BaseModel):
    """Base class for all public result, log and option models"""

    model_config = ConfigDict(extra='forbid')

    def __str__(self) -> str:
        return f'{self.__class__.__name__}: {json.dumps(self.to_dict(), indent=2, default=str)}'

    def to_dict(self, exclude_unset: bool = False, **kwargs):
        """Converts the model to a JSON-compatible dictionary."""
        return self.model_dump(mode='json', exclude_unset=exclude_unset, **kwargs)


class RichEnum(Enum):
    """
    Enum with case-insensitive lookup by value and plain-value string
    conversion, so members log and serialize as their values.
    """

    @classmethod
    def keys(cls) -> List[str]:
        """Return a list of all enum member names."""
        return [member.name for member in cls]

    @classmethod
    def from_str(cls: Type[E], string: str, default: Optional[E] = None) -> E:
        """
        Retrieve enum member by string value (case-insensitive for strings).

        Raises:
            KeyError: When no member matches and no default is given.
        """
        if string is None:
            if default is not None:
                return default
            raise ValueError(f'Cannot look up None in {cls.__name__}')

        for member in cls:
            val = member.value
            if string == val or (
                isinstance(val, str) and string.lower() == val.lower()
            ):
                return member

        if default is not None:
            return default

        raise KeyError(f"'{string}' not found in {cls.__name__}")

    def __str__(self) -> str:
        return str(self.value)
