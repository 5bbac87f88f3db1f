from __future__ import annotations

from article_refresher.llm.client import RewriteClient, LLMConfig

__all__ = ["RewriteClient", "LLMConfig"]
