"""Per-model token prices for cost accounting."""

from frontline.providers.llm.base import TokenUsage

# USD per one million tokens: (input, output)
MODEL_PRICING: dict[str, tuple[float, float]] = {
    "gpt-4o-mini": (0.15, 0.60),
    "gpt-4o": (2.50, 10.00),
    "gpt-4-turbo": (10.00, 30.00),
}

DEFAULT_PRICING_MODEL = "gpt-4o-mini"


def estimate_cost(model: str, usage: TokenUsage | None) -> float:
    """Dollar cost of one call.

    ``model`` may carry a provider prefix (``openai/gpt-4o``). Unknown
    models are priced like gpt-4o-mini.
    """
    if usage is None:
        return 0.0
    name = model.rsplit("/", 1)[-1]
    input_price, output_price = MODEL_PRICING.get(name, MODEL_PRICING[DEFAULT_PRICING_MODEL])
    return (
        usage.prompt_tokens * input_price + usage.completion_tokens * output_price
    ) / 1_000_000
