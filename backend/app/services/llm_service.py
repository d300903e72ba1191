"""
LLM 服务：调用 OpenAI 兼容接口做单轮补全（邮件主题、正文生成）
"""
import re
from openai import AsyncOpenAI
from app.core.config import settings

SUBJECT_MAX_WORDS = 10
BODY_MAX_WORDS = 150


def _client() -> AsyncOpenAI:
    return AsyncOpenAI(
        api_key=settings.OPENAI_API_KEY or "dummy",
        base_url=settings.OPENAI_BASE_URL,
    )


async def chat_completion(
    user_content: str,
    system_content: str = "You are a helpful assistant.",
    max_tokens: int = 512,
) -> str:
    """单轮对话，返回去掉首尾空白的文本。"""
    client = _client()
    resp = await client.chat.completions.create(
        model=settings.LLM_MODEL,
        messages=[
            {"role": "system", "content": system_content},
            {"role": "user", "content": user_content},
        ],
        max_tokens=max_tokens,
        temperature=settings.LLM_TEMPERATURE,
    )
    return (resp.choices[0].message.content or "").strip()


def clean_subject(raw: str) -> str:
    """去掉包裹的引号和 "Subject:" 前缀，超过 10 个词时截断"""
    text = raw.strip().splitlines()[0] if raw.strip() else ""
    text = re.sub(r"^subject\s*:\s*", "", text, flags=re.I)
    text = re.sub(r"^[\"']|[\"']$", "", text.strip())
    words = text.split()
    if len(words) > SUBJECT_MAX_WORDS:
        text = " ".join(words[:SUBJECT_MAX_WORDS])
    return text


async def generate_email_subject(request: str) -> str:
    prompt = (
        f"Generate a concise, professional email subject line for an email that is {request}. "
        f"Keep it under {SUBJECT_MAX_WORDS} words. Only return the subject line, nothing else."
    )
    raw = await chat_completion(
        prompt,
        system_content="You are a helpful assistant that generates email subject lines.",
        max_tokens=40,
    )
    return clean_subject(raw)


async def generate_email_body(request: str) -> str:
    prompt = (
        f"Write a professional email body for {request}.\n"
        "Keep it concise, polite, and to the point.\n"
        "Include a proper greeting and sign-off.\n"
        "Do not include a subject line or email headers.\n"
        f"Keep it under {BODY_MAX_WORDS} words."
    )
    return await chat_completion(
        prompt,
        system_content="You are a helpful assistant that writes professional emails.",
        max_tokens=400,
    )
