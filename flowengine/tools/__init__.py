"""External services invoked by workflow nodes."""

from .text_cleaner import TextCleaner, StaticTextCleaner, OpenAITextCleaner

__all__ = [
    "TextCleaner",
    "StaticTextCleaner",
    "OpenAITextCleaner",
]
