"""
Menu Suggestion Example

Streams a menu suggestion from Gemini to the terminal, fragment by fragment.

Usage:
    pip install -e .[genai]
    GOOGLE_GENAI_API_KEY=... python menu.py pirate
"""

import asyncio
import sys

from distserve.flows import GeminiGenerator, MenuSuggestionFlow


async def main(subject: str | None) -> None:
	flow = MenuSuggestionFlow(GeminiGenerator())
	await flow.run(subject, lambda chunk: print(chunk, end="", flush=True))
	print()


if __name__ == "__main__":
	asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else None))

# EOF
