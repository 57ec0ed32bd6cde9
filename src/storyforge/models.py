"""
Story data models.

This module defines the canonical structure for users, stories and characters
using Pydantic for validation and type safety. Field names are snake_case in
Python; the JSON wire format uses camelCase aliases (``userId``,
``dateGenerated``, ``plotElements``...) and both spellings are accepted on
input.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Theme(str, Enum):
    """Story themes offered by the web form and the chat bot."""
    ADVENTURE = "adventure"
    FANTASY = "fantasy"
    SCIFI = "scifi"
    MYSTERY = "mystery"
    ROMANCE = "romance"
    COMEDY = "comedy"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class StoryLength(str, Enum):
    """Target story length."""
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


THEMES: List[str] = [theme.value for theme in Theme]

# Approximate word-count band requested from the model for each length
WORD_COUNT_BANDS: Dict[StoryLength, str] = {
    StoryLength.SHORT: "250-500",
    StoryLength.MEDIUM: "500-1000",
    StoryLength.LONG: "1000-1500",
}

LENGTH_LABELS: Dict[StoryLength, str] = {
    length: f"{length.value.capitalize()} ({band} words)"
    for length, band in WORD_COUNT_BANDS.items()
}


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to a JSON-ready dictionary using wire aliases."""
        return self.model_dump(mode="json", by_alias=True)


class User(_CamelModel):
    id: int
    username: str
    password: str


class NewUser(_CamelModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class Character(_CamelModel):
    """A named participant belonging to exactly one story."""
    id: int
    story_id: int
    name: str
    description: Optional[str] = None


class CharacterInput(_CamelModel):
    """Character as supplied by a generation request."""
    name: str
    description: Optional[str] = None


class NewCharacter(_CamelModel):
    story_id: int
    name: str
    description: Optional[str] = None


class Story(_CamelModel):
    """
    A generated story.

    ``characters`` is only populated when the story was loaded together with
    its characters; list views leave it as ``None``.
    """
    id: int
    user_id: Optional[int] = None
    title: str
    content: str
    theme: str
    setting: Optional[str] = None
    date_generated: datetime
    characters: Optional[List[Character]] = None

    @property
    def paragraphs(self) -> List[str]:
        return [p for p in self.content.split("\n\n") if p.strip()]

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.characters is None:
            data.pop("characters", None)
        return data


class NewStory(_CamelModel):
    user_id: Optional[int] = None
    title: str
    content: str
    theme: str
    setting: Optional[str] = None


class GenerateStoryRequest(_CamelModel):
    """
    Parameters for a story generation request.

    ``theme`` is free text here; the enumeration is only enforced by the
    clients that offer a fixed choice (web form, chat bot).
    """
    theme: str
    title: Optional[str] = None
    setting: Optional[str] = None
    characters: Optional[List[CharacterInput]] = None
    length: StoryLength
    plot_elements: Optional[str] = None


class ExportPdfRequest(_CamelModel):
    story_id: int = Field(..., strict=True)


class GeneratedStory(BaseModel):
    """Title and prose returned by the generation client."""
    title: str
    content: str


def blank_to_none(value: Optional[str]) -> Optional[str]:
    """Normalise empty optional text to ``None`` before persisting it."""
    if value is None or value == "":
        return None
    return value


def format_validation_error(error: Any) -> str:
    """
    Render a Pydantic ValidationError as one human-readable sentence.

    Example:
        "Validation error: Field required at \"length\""
    """
    parts = []
    for item in error.errors():
        location = ".".join(str(part) for part in item.get("loc", ()))
        message = item.get("msg", "Invalid value")
        parts.append(f'{message} at "{location}"' if location else message)
    return "Validation error: " + "; ".join(parts)
