"""
Story prompt builder for LLM story generation.

Renders a GenerateStoryRequest into the fixed instruction block sent to the
model. The template is fixed text; only the request values vary.
"""

from typing import List

from ..models import GenerateStoryRequest, WORD_COUNT_BANDS

STORY_SYSTEM_PROMPT = (
    "You are an expert storyteller and creative writer. You craft engaging, "
    "coherent, and thoughtful stories based on the provided parameters. Always "
    "output in a JSON format with a 'title' and 'content' field."
)

DEFAULT_CHARACTER_INSTRUCTION = "Create suitable characters for this story"
DEFAULT_TITLE_INSTRUCTION = "Please generate an engaging title"


def format_character_lines(request: GenerateStoryRequest) -> List[str]:
    """Render each requested character as ``name`` or ``name - description``."""
    if not request.characters:
        return [DEFAULT_CHARACTER_INSTRUCTION]
    lines = []
    for character in request.characters:
        if character.description:
            lines.append(f"{character.name} - {character.description}")
        else:
            lines.append(character.name)
    return lines


def build_story_prompt(request: GenerateStoryRequest) -> str:
    """
    Build the user prompt for a story generation request.

    Args:
        request: Validated generation parameters

    Returns:
        Prompt text containing theme, title, setting, characters, the
        word-count band for the requested length and any plot elements
    """
    title_line = f"TITLE: {request.title}" if request.title else DEFAULT_TITLE_INSTRUCTION
    setting_line = f"SETTING: {request.setting}" if request.setting else ""
    plot_line = (
        f"ADDITIONAL PLOT ELEMENTS: {request.plot_elements}" if request.plot_elements else ""
    )
    characters = "\n- ".join(format_character_lines(request))

    return f"""
Please create a complete story with the following specifications:

THEME: {request.theme}
{title_line}
{setting_line}

CHARACTERS:
- {characters}

LENGTH: {WORD_COUNT_BANDS[request.length]} words

{plot_line}

Please write a coherent, engaging, and complete story based on these parameters. Make it creative and compelling with a clear beginning, middle, and end. Format the story with proper paragraphs.

Respond with a JSON object containing:
1. "title" - The title of the story (use the provided one if given)
2. "content" - The full text of the story with proper paragraph breaks
"""
