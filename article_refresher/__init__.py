"""
Article Refresher

Rewrites the opening and closing prose of Hugo articles with an LLM while
keeping front matter, headings, gist embeds and links intact.
"""
from article_refresher.pipeline import RewritePipeline
from article_refresher.validator import DocumentValidator
from article_refresher.llm.client import RewriteClient, LLMConfig
from article_refresher.spans import extract_opening, extract_closing

__all__ = [
    "RewritePipeline",
    "DocumentValidator",
    "RewriteClient",
    "LLMConfig",
    "extract_opening",
    "extract_closing",
]
