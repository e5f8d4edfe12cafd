from __future__ import annotations

MAX_PROMPT_LENGTH = 1024
DESCRIPTION_PLACEHOLDER = "{description}"

ENHANCE_INSTRUCTION = (
    "Act as a professional photo restoration expert. Enhance this image to the highest "
    "quality possible. Focus on increasing sharpness, clarity, and detail without "
    "introducing artifacts. Correct any noise, improve lighting, and balance colors to "
    "make it look crisp and professional. The content and composition must remain "
    "identical to the original."
)

REMOVE_BACKGROUND_INSTRUCTION = (
    "Act as an expert photo editor. Your task is to perfectly mask the main subject(s) "
    "and completely remove the background, making it transparent. The edges of the "
    "subject must be clean and precise. Do not crop, resize, or alter the subject in "
    "any way. Output a transparent PNG."
)

EXPAND_TEMPLATE = (
    "{description}. Seamlessly extend this scene beyond the borders, maintaining "
    "consistent lighting, style, colors, and atmosphere. Fill the expanded areas "
    "naturally as if the scene continues."
)


def truncate_prompt(prompt: str, max_length: int = MAX_PROMPT_LENGTH) -> str:
    """Cut a prompt to ``max_length``, preferring a sentence end, then a word boundary."""
    if len(prompt) <= max_length:
        return prompt

    truncated = prompt[:max_length]
    last_sentence_end = max(
        truncated.rfind(". "),
        truncated.rfind(".\n"),
        truncated.rfind("? "),
        truncated.rfind("! "),
    )
    if last_sentence_end > max_length * 0.7:
        return truncated[: last_sentence_end + 1]

    last_space = truncated.rfind(" ")
    if last_space > max_length * 0.9:
        return truncated[:last_space]

    return truncated


def build_prompt_with_description(
    template: str,
    description: str,
    placeholder: str = DESCRIPTION_PLACEHOLDER,
    max_length: int = MAX_PROMPT_LENGTH,
) -> str:
    """Fill ``template`` keeping it intact; only the description is shortened to fit."""
    full_prompt = template.replace(placeholder, description)
    if len(full_prompt) <= max_length:
        return full_prompt

    available = max_length - len(template.replace(placeholder, ""))
    if available <= 50:
        return truncate_prompt(full_prompt, max_length)

    return template.replace(placeholder, truncate_prompt(description, available))


def clean_model_text(text: str | None) -> str:
    """Strip whitespace and a pair of wrapping quotes some models add."""
    cleaned = (text or "").strip()
    if len(cleaned) >= 2 and cleaned[0] == cleaned[-1] == '"':
        cleaned = cleaned[1:-1].strip()
    return cleaned
