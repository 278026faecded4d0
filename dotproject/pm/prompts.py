"""
Prompt bodies for stories and tasks.

A prompt arrives either as an explicit entry in the batch's prompts list
(with literal `content`) or as an inline `prompt` field on a story or
task. Inline prompts are structured and rendered to markdown here.
"""

__all__ = ["render_prompt", "prompt_body", "PROMPT_SECTIONS"]

# Inline prompt fields, in rendering order
PROMPT_SECTIONS = [
    ("role", "Role"),
    ("intent", "Intent"),
    ("constraints", "Constraints"),
    ("acceptance", "Acceptance"),
]


def _render_value(value) -> str:
    if isinstance(value, list):
        return "\n" + "\n".join(f"- {item}" for item in value)
    return str(value)


def render_prompt(prompt) -> str:
    """
    Render an inline prompt to markdown.

    Args:
        prompt: Mapping with optional role, intent, constraints, acceptance,
                or a plain string used verbatim as the body

    Returns:
        Markdown text ending with a newline
    """
    if isinstance(prompt, str):
        return prompt if prompt.endswith("\n") else prompt + "\n"

    parts = ["# Prompt\n\n"]
    for field, label in PROMPT_SECTIONS:
        value = prompt.get(field)
        if value:
            parts.append(f"**{label}:** {_render_value(value)}\n\n")
    return "".join(parts)


def prompt_body(entry: dict) -> str:
    """Body of an explicit prompts-list entry."""
    content = entry.get("content")
    if content is None:
        return ""
    return str(content)
