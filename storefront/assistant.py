# storefront/assistant.py
from fastapi import APIRouter, Depends, HTTPException, status

from .ai import (
    GenerationError, TextGenerator,
    customer_support_chat, generate_product_description,
)
from .deps import get_text_generator
from .schemas import ProductDescriptionOut, ProductDescriptionRequest, SupportChatOut, SupportChatRequest

router = APIRouter(prefix="/api/ai", tags=["ai"])


@router.post("/product-description", response_model=ProductDescriptionOut)
async def product_description(
    payload: ProductDescriptionRequest,
    generate: TextGenerator = Depends(get_text_generator),
):
    try:
        return await generate_product_description(generate, payload)
    except GenerationError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY,
                            detail="Failed to generate description. Please try again.")


@router.post("/support-chat", response_model=SupportChatOut)
async def support_chat(
    payload: SupportChatRequest,
    generate: TextGenerator = Depends(get_text_generator),
):
    try:
        return await customer_support_chat(generate, payload)
    except GenerationError:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY,
                            detail="Sorry, I am unable to respond right now. Please try again later.")
