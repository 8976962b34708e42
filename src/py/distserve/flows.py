import os
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Callable, ClassVar

from .config import GENAI_API_KEY
from .utils.logging import LogLevel, debug, info, logged

__doc__ = """
Boundary with a hosted generative-text provider. A `TextGenerator` offers
a request/response call returning the final text and an incremental call
yielding text fragments as they arrive. The stream is lazy, finite, and
cannot be restarted. `MenuSuggestionFlow` is the one flow built on top of it.
"""


class MissingCredential(RuntimeError):
	"""Raised when the provider is used without an API key."""


class TextGenerator(ABC):
	@abstractmethod
	async def generate(self, prompt: str) -> str: ...

	@abstractmethod
	def stream(self, prompt: str) -> AsyncIterator[str]: ...


class GeminiGenerator(TextGenerator):
	"""Generates text with a Gemini model through `google-genai`. The API key
	defaults to the `GOOGLE_GENAI_API_KEY` environment variable."""

	MODEL: ClassVar[str] = "gemini-1.5-flash"

	def __init__(
		self,
		apiKey: str | None = None,
		model: str | None = None,
		*,
		temperature: float = 1.0,
	) -> None:
		self.apiKey: str = (apiKey or os.environ.get(GENAI_API_KEY, "")).strip()
		self.model: str = model or self.MODEL
		self.temperature: float = temperature
		self._client: Any = None

	@property
	def available(self) -> bool:
		return bool(self.apiKey)

	@property
	def client(self) -> Any:
		if self._client is None:
			if not self.apiKey:
				raise MissingCredential(
					f"No API key given and {GENAI_API_KEY} is not set"
				)
			from google import genai

			self._client = genai.Client(api_key=self.apiKey)
		return self._client

	@property
	def config(self) -> dict[str, Any]:
		return {"temperature": self.temperature}

	async def generate(self, prompt: str) -> str:
		response = await self.client.aio.models.generate_content(
			model=self.model, contents=prompt, config=self.config
		)
		return response.text or ""

	async def stream(self, prompt: str) -> AsyncIterator[str]:
		chunks = await self.client.aio.models.generate_content_stream(
			model=self.model, contents=prompt, config=self.config
		)
		async for chunk in chunks:
			if chunk.text:
				yield chunk.text


class MenuSuggestionFlow:
	"""Suggests an item for the menu of a themed restaurant."""

	NAME: ClassVar[str] = "menuSuggestionFlow"
	DEFAULT_SUBJECT: ClassVar[str] = "seafood"

	def __init__(self, generator: TextGenerator) -> None:
		self.generator: TextGenerator = generator

	def prompt(self, subject: str | None = None) -> str:
		return f"Suggest an item for the menu of a {subject or self.DEFAULT_SUBJECT} themed restaurant"

	async def generate(self, subject: str | None = None) -> str:
		return await self.generator.generate(self.prompt(subject))

	async def run(
		self,
		subject: str | None = None,
		sendChunk: Callable[[str], Any] | None = None,
	) -> str:
		"""Streams the suggestion, passing each fragment to `sendChunk` as it
		arrives, and returns the whole text."""
		prompt = self.prompt(subject)
		info("Running flow", Flow=self.NAME, Subject=subject or self.DEFAULT_SUBJECT)
		text: list[str] = []
		async for chunk in self.generator.stream(prompt):
			logged(LogLevel.Debug) and debug("Flow chunk", Flow=self.NAME, Size=len(chunk))
			text.append(chunk)
			if sendChunk:
				sendChunk(chunk)
		return "".join(text)


# EOF
