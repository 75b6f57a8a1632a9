"""
Provider-agnostic LLM factory.

Every call site passes the caller's resolved API key (BYOK or shared), so the
model is built per request instead of cached:
  LLM_PROVIDER=openrouter | openai
  EXTRACTION_MODEL / CHUNKING_MODEL=google/gemini-2.5-flash-lite | gpt-4o-mini
"""

from langchain_core.language_models import BaseChatModel

from studybuddy.config import get_settings


def create_llm(api_key: str, model: str) -> BaseChatModel:
    """Create a chat model for the configured provider.

    Args:
        api_key: OpenRouter (or OpenAI) key to authenticate with.
        model: Provider model identifier.

    Returns:
        BaseChatModel: A LangChain-compatible chat model.

    Raises:
        ValueError: If provider is not supported.
    """
    settings = get_settings()

    match settings.LLM_PROVIDER:
        case "openrouter":
            from langchain_openai import ChatOpenAI

            return ChatOpenAI(
                model=model,
                api_key=api_key,
                base_url=settings.OPENROUTER_BASE_URL,
                temperature=settings.LLM_TEMPERATURE,
            )

        case "openai":
            from langchain_openai import ChatOpenAI

            return ChatOpenAI(
                model=model,
                api_key=api_key,
                temperature=settings.LLM_TEMPERATURE,
            )

        case _:
            raise ValueError(
                f"Unknown LLM provider: '{settings.LLM_PROVIDER}'. "
                f"Supported: openrouter, openai"
            )
