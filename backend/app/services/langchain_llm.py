"""
LangChain 封装的 LLM：ChatOpenAI 实例与 AIMessage 工具调用解析，供 Agent 规划器使用。
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from app.core.config import settings

logger = logging.getLogger(__name__)


# LangChain 在首次调用时才导入
def _get_llm(model: Optional[str] = None, max_tokens: int = 1024):
    from langchain_openai import ChatOpenAI
    use_model = (model or "").strip() or settings.LLM_MODEL
    return ChatOpenAI(
        model=use_model,
        openai_api_key=settings.OPENAI_API_KEY or "dummy",
        openai_api_base=settings.OPENAI_BASE_URL,
        max_tokens=max_tokens,
        temperature=settings.LLM_TEMPERATURE,
    )


def _ai_message_tool_calls(ai_message: Any) -> List[Dict[str, Any]]:
    """从 LangChain AIMessage 提取 tool_calls，转为 [{ id, name, arguments }]。"""
    tool_calls = []
    for tc in getattr(ai_message, "tool_calls", []) or []:
        tid = tc.get("id", "") if isinstance(tc, dict) else getattr(tc, "id", "")
        name = tc.get("name", "") if isinstance(tc, dict) else getattr(tc, "name", "")
        args = tc.get("args", {}) if isinstance(tc, dict) else getattr(tc, "args", {})
        if not isinstance(args, dict):
            args = {}
        tool_calls.append({"id": tid or "", "name": name or "", "arguments": args})
    return tool_calls


def _ai_message_text(ai_message: Any) -> str:
    """AIMessage.content 可能是字符串或分段列表，统一取文本"""
    content = getattr(ai_message, "content", None)
    if isinstance(content, list):
        content = " ".join(
            p.get("text", "") for p in content if isinstance(p, dict) and p.get("type") == "text"
        )
    return (content or "").strip()
