"""
聊天回复格式化：把 /invoke 的响应转成展示给用户的一段文本
"""
from typing import Any, Dict

LOGIN_PROMPT = (
    "🔐 You need to log in to Google first. Run `python -m app.client login`, "
    "finish signing in in the browser window that opens, then try again."
)


def format_agent_reply(response: Dict[str, Any]) -> str:
    if response.get("needsLogin"):
        return LOGIN_PROMPT
    error = response.get("error")
    if error:
        details = response.get("details")
        return f"❌ Error: {details or error}"
    result = response.get("result") or response.get("output")
    if not result:
        return "❌ Error: The helper returned no result."
    return str(result)
