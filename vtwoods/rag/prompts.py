from pathlib import Path

from vtwoods.config import settings

EMPTY_PROMPT = "Ask a Vermont forestry question."
DEVELOPER_CONTACT = (
    "Please contact the developer with your questions or feedback "
    "(steve@northeastforests.com)."
)
SOILS_REDIRECT = (
    "For soils questions, use the official soil map tool (Web Soil Survey) "
    "for your specific location."
)
OUT_OF_SCOPE = "Your request is beyond the scope and purpose of this app."
NO_ANSWER = "No answer returned."

_DEFAULT_INSTRUCTIONS = "\n".join(
    [
        "You are the VT Woods App.",
        "You are a Vermont-only forestry and forest products industry assistant.",
        "Use ONLY the provided documents in the vector store. Do not use outside knowledge.",
        f"If the user asks anything out of scope, respond with exactly: “{OUT_OF_SCOPE}”",
        "Use precise terminology. Use “forest products industry” "
        "(not “forestry industry”).",
        "Avoid speculation or nontechnical language.",
        "Ask at most one clarifying question when needed.",
        "Provide practical, field-ready outputs (steps, checklists, decision rules) "
        "only when supported by the documents.",
        "For soils-related questions, the app must refer the user to the official "
        "soil map tool (Web Soil Survey).",
        "Only provide citations when explicitly requested.",
        "If citations are requested, cite document titles and relevant sections/pages "
        "when possible.",
    ]
)


def _load_system_instructions() -> str:
    if not settings.SYSTEM_PROMPT_FILE:
        return _DEFAULT_INSTRUCTIONS

    path = Path(settings.SYSTEM_PROMPT_FILE).expanduser()
    if not path.is_absolute():
        cwd_path = Path.cwd() / path
        repo_root = Path(__file__).resolve().parents[2]
        repo_path = repo_root / path
        path = cwd_path if cwd_path.exists() else repo_path
    try:
        text = path.read_text(encoding="utf-8").strip()
    except OSError as exc:
        raise RuntimeError(
            f"Failed to read SYSTEM_PROMPT_FILE at '{path}': {exc}"
        ) from exc
    if not text:
        raise RuntimeError(f"SYSTEM_PROMPT_FILE is empty: '{path}'")
    return text


SYSTEM_INSTRUCTIONS = _load_system_instructions()


def build_relevance_prompt(question: str, excerpts: list[str]) -> str:
    passages = "\n\n".join([f"[{i}] {text[:700]}" for i, text in enumerate(excerpts)])
    return f"""
Decide whether the excerpts below contain enough information to answer the question.

Question: {question}

Excerpts:
{passages}

Return ONLY JSON. Example: {{"relevant": true}}
""".strip()
