"""Prompt construction for the AI assist actions.

Maps an action plus optional user prompt and note context to the ordered
chat messages sent to the completion API. Pure: no I/O, same input gives the
same output.
"""

from enum import Enum
from typing import Dict, List, Optional, Union

from app.core.logging import logger


class AIAction(str, Enum):
    GENERATE = "generate"
    IMPROVE = "improve"
    SUMMARIZE = "summarize"
    TRANSLATE = "translate"
    ANSWER = "answer"


SYSTEM_PROMPTS: Dict[AIAction, str] = {
    AIAction.GENERATE: (
        "You are a helpful assistant for note-taking. "
        "Generate clear, well-structured content based on user requests."
    ),
    AIAction.IMPROVE: (
        "You are an expert editor. Improve the given text while maintaining its core message. "
        "Make it more professional, clear, and concise."
    ),
    AIAction.SUMMARIZE: (
        "You are a summarization expert. "
        "Create concise, accurate summaries that capture key points."
    ),
    AIAction.TRANSLATE: (
        "You are a professional translator. "
        "Translate the text accurately while maintaining tone and context."
    ),
    AIAction.ANSWER: (
        "You are a knowledgeable assistant. "
        "Answer questions based on the provided context clearly and accurately."
    ),
}

# Fixed user instructions for actions that work on supplied text
IMPROVE_INSTRUCTION = "Improve this text:"
SUMMARIZE_INSTRUCTION = "Summarize this text in 3-5 bullet points:"
TRANSLATE_INSTRUCTION = "Translate the following text to {language}:"
DEFAULT_TARGET_LANGUAGE = "English"

CONTEXT_LABEL = "Context from my notes:"


def resolve_action(action: Union[AIAction, str]) -> AIAction:
    """Coerce an action name to `AIAction`; unknown names fall back to GENERATE."""
    if isinstance(action, AIAction):
        return action
    try:
        return AIAction(action)
    except ValueError:
        logger.warning(f"Unknown AI action '{action}', falling back to '{AIAction.GENERATE.value}'")
        return AIAction.GENERATE


def build_messages(
    action: Union[AIAction, str],
    prompt: Optional[str] = None,
    context: Optional[str] = None,
    target_language: Optional[str] = None,
) -> List[Dict[str, str]]:
    """
    Build the chat messages for an AI action.

    Always one system message, then an optional context message, then the
    action's user message: the prompt verbatim for GENERATE and ANSWER, a
    fixed instruction for IMPROVE, SUMMARIZE and TRANSLATE.
    """
    action = resolve_action(action)

    messages = [{"role": "system", "content": SYSTEM_PROMPTS[action]}]

    if context:
        messages.append({"role": "user", "content": f"{CONTEXT_LABEL}\n{context}"})

    messages.append({"role": "user", "content": _instruction_for(action, prompt, target_language)})
    return messages


def _instruction_for(action: AIAction, prompt: Optional[str], target_language: Optional[str]) -> str:
    if action is AIAction.IMPROVE:
        return IMPROVE_INSTRUCTION
    if action is AIAction.SUMMARIZE:
        return SUMMARIZE_INSTRUCTION
    if action is AIAction.TRANSLATE:
        return TRANSLATE_INSTRUCTION.format(language=target_language or DEFAULT_TARGET_LANGUAGE)
    # GENERATE and ANSWER pass the caller's prompt / question through
    return prompt or ""
