import json

import httpx
import pytest

from storefront.ai import GenerationError, OpenAITextGenerator, generate_product_description
from storefront.schemas import ProductDescriptionRequest

from conftest import FakeGenerator, run


def completion(content):
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1760875200,
        "model": "gpt-4o-mini",
        "choices": [{
            "index": 0,
            "message": {"role": "assistant", "content": content},
            "finish_reason": "stop",
        }],
    }


def test_openai_generator_returns_stripped_text():
    seen = []

    def handler(request):
        seen.append((request.url.path, json.loads(request.content)))
        return httpx.Response(200, json=completion("  Light and waterproof.\n"))

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http_client:
            generate = OpenAITextGenerator("sk-test", "gpt-4o-mini", http_client=http_client)
            return await generate("Describe the Trail Runner")

    assert run(scenario()) == "Light and waterproof."
    path, body = seen[0]
    assert path.endswith("/chat/completions")
    assert body["model"] == "gpt-4o-mini"
    assert body["messages"] == [{"role": "user", "content": "Describe the Trail Runner"}]


def test_description_prompt_carries_request_fields():
    generator = FakeGenerator(reply="  A shoe.  ")
    req = ProductDescriptionRequest(
        product_name="Trail Runner",
        product_category="Shoes",
        key_features="light",
        target_audience="hikers",
    )
    out = run(generate_product_description(generator, req))
    assert out.description == "A shoe."
    assert "Shoes" in generator.prompts[0] and "hikers" in generator.prompts[0]


def test_empty_completion_is_an_error():
    req = ProductDescriptionRequest(
        product_name="Trail Runner", product_category="Shoes", key_features="light", target_audience="hikers",
    )
    with pytest.raises(GenerationError):
        run(generate_product_description(FakeGenerator(reply="   "), req))
