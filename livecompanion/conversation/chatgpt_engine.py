"""ChatGPT engine for sending companion prompts and getting responses."""

import logging
import aiohttp

from ..errors import GenerationError

logger = logging.getLogger(__name__)


class ChatGPTReplyEngine:
    """Simple engine for sending prompts to ChatGPT and getting responses."""

    def __init__(self, api_key: str, model: str = "gpt-4o-mini",
                 temperature: float = 0.8, max_tokens: int = 300,
                 timeout_seconds: float = 30.0):
        """Initialize ChatGPT reply engine.

        Args:
            api_key: OpenAI API key
            model: ChatGPT model to use for replies
            temperature: Default temperature for reply generation
            max_tokens: Default maximum tokens in a reply
            timeout_seconds: Total request timeout
        """
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.base_url = "https://api.openai.com/v1/chat/completions"

        logger.info(f"ChatGPTReplyEngine initialized with model: {model}")

    async def send_prompt(self, prompt: str, temperature: float = None, max_tokens: int = None) -> str:
        """Send a prompt to ChatGPT and get the response.

        Args:
            prompt: Prompt to send to ChatGPT
            temperature: Overrides the engine default
            max_tokens: Overrides the engine default

        Returns:
            Response text from ChatGPT

        Raises:
            GenerationError: If the API call fails or returns an unexpected payload
        """
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }

        data = {
            "model": self.model,
            "messages": [
                {
                    "role": "user",
                    "content": prompt
                }
            ],
            "temperature": self.temperature if temperature is None else temperature,
            "max_tokens": self.max_tokens if max_tokens is None else max_tokens
        }

        async with aiohttp.ClientSession(timeout=self.timeout) as session:
            async with session.post(self.base_url, headers=headers, json=data) as response:
                if response.status != 200:
                    error_text = await response.text()
                    raise GenerationError(f"ChatGPT API error: {response.status} - {error_text}")

                result = await response.json()

        try:
            return result["choices"][0]["message"]["content"].strip()
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise GenerationError(f"Unexpected ChatGPT response payload: {e}") from e
