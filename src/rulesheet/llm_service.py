# llm service calling an openai-compatible chat completions endpoint
import requests
import logging
from typing import List, Dict, Optional

from .config import Settings, get_settings
from .errors import GenerationError
from .prompt import build_messages

logger = logging.getLogger(__name__)


# service for turning rulebook text into a markdown summary
class ChatCompletionService:
    """Chat completion client for the summary generator"""

    # initialize service from explicit values, falling back to settings
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        temperature: Optional[float] = None,
        session: Optional[requests.Session] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self.api_key = api_key if api_key is not None else settings.openai_api_key
        self.model = model or settings.openai_model
        self.base_url = (base_url or settings.openai_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.generation_timeout
        self.temperature = temperature if temperature is not None else settings.generation_temperature
        self.session = session or requests.Session()

    # send one chat completion request and return the assistant message
    def generate_chat_completion(self, messages: List[Dict[str, str]]) -> str:
        """Generate chat completion, no retry on failure"""
        if not self.api_key:
            raise GenerationError("No API key configured for the generation endpoint")

        payload = {"model": self.model, "messages": messages}
        if self.temperature is not None:
            payload["temperature"] = self.temperature

        prompt_length = sum(len(m.get("content", "")) for m in messages)
        logger.info(f"[LLM] Sending request to model: {self.model}")
        logger.info(f"[LLM] Prompt length: {prompt_length} chars")

        try:
            response = self.session.post(
                f"{self.base_url}/chat/completions",
                json=payload,
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise GenerationError("Request timed out. The model might be too slow or overloaded.") from e
        except requests.exceptions.RequestException as e:
            raise GenerationError(f"Cannot reach the generation endpoint: {str(e)}") from e

        if response.status_code != 200:
            raise GenerationError(f"Chat completion API error: {response.status_code} - {response.text}")

        try:
            result = response.json()
            content = result["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise GenerationError(f"Unexpected chat completion response: {str(e)}") from e

        logger.info(f"[LLM] Response received. Usage: {result.get('usage')}")
        return (content or "").strip()

    # generate the rules summary for the given rulebook text
    def generate_summary(self, rulebook_text: str) -> str:
        """Generate markdown from rulebook text using the style prompt"""
        markdown = self.generate_chat_completion(build_messages(rulebook_text))
        if not markdown:
            raise GenerationError("The model returned an empty summary")
        logger.info(f"[LLM] Summary length: {len(markdown)} chars")
        return markdown


# global instance for singleton pattern
llm_service = None


# get or create the global llm service instance
def get_llm_service() -> ChatCompletionService:
    """Get or create the global LLM service instance"""
    global llm_service
    if llm_service is None:
        llm_service = ChatCompletionService()
    return llm_service
