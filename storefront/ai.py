# storefront/ai.py
"""Text generation for the admin description helper and the support chat.

The generator is any ``async (prompt: str) -> str`` callable; production
wires :class:`OpenAITextGenerator`.
"""
import logging
from typing import Awaitable, Callable, Optional

import httpx
from openai import AsyncOpenAI

from .schemas import (
    ProductDescriptionOut, ProductDescriptionRequest,
    SupportChatOut, SupportChatRequest,
)

log = logging.getLogger("storefront.ai")

TextGenerator = Callable[[str], Awaitable[str]]

DESCRIPTION_PROMPT = """You are an expert copywriter specializing in e-commerce product descriptions.
Write a concise, persuasive product description.

Product Name: {product_name}
Product Category: {product_category}
Key Features: {key_features}
Target Audience: {target_audience}
"""

SUPPORT_PROMPT = """You are a customer support agent for an e-commerce store.
Answer the customer's question using the information below.

Order history: {order_history}
Product details: {product_details}

Customer Query: {query}
"""


class GenerationError(Exception):
    pass


class OpenAITextGenerator:
    def __init__(self, api_key: str, model: str, http_client: Optional[httpx.AsyncClient] = None):
        self.model = model
        self._client = AsyncOpenAI(api_key=api_key, http_client=http_client)

    async def __call__(self, prompt: str) -> str:
        resp = await self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
        )
        return (resp.choices[0].message.content or "").strip()


async def _generate(generate: TextGenerator, prompt: str) -> str:
    try:
        text = await generate(prompt)
    except Exception as e:
        log.exception("text generation failed")
        raise GenerationError(str(e)) from e
    if not text or not text.strip():
        raise GenerationError("empty completion")
    return text.strip()


async def generate_product_description(generate: TextGenerator, req: ProductDescriptionRequest) -> ProductDescriptionOut:
    prompt = DESCRIPTION_PROMPT.format(
        product_name=req.product_name,
        product_category=req.product_category,
        key_features=req.key_features,
        target_audience=req.target_audience,
    )
    return ProductDescriptionOut(description=await _generate(generate, prompt))


async def customer_support_chat(generate: TextGenerator, req: SupportChatRequest) -> SupportChatOut:
    prompt = SUPPORT_PROMPT.format(
        order_history=req.order_history or "not available",
        product_details=req.product_details or "not available",
        query=req.query,
    )
    return SupportChatOut(response=await _generate(generate, prompt))
