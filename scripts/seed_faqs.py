"""Load FAQ entries into the knowledge store, embedding each question first.

Usage: python scripts/seed_faqs.py [path/to/faqs.json]
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from supportbot.core.config import get_config
from supportbot.core.dependencies import build_embedding_provider, build_knowledge_store
from supportbot.core.exceptions import KnowledgeStoreError, ProviderUnavailable
from supportbot.core.logging_config import configure_logging

logger = logging.getLogger("supportbot.scripts.seed_faqs")

SAMPLE_FAQS: list[dict[str, str]] = [
    {
        "question": "What is your return policy?",
        "answer": "Our return policy allows you to return products within 30 days of purchase for a full refund, provided they are in their original condition and packaging. Please refer to our Returns page for detailed instructions.",
        "category": "Returns",
    },
    {
        "question": "How long does shipping take?",
        "answer": "Standard shipping takes 3-5 business days. Express shipping takes 1-2 business days. Free shipping is available on orders over $50.",
        "category": "Shipping",
    },
    {
        "question": "How can I track my order?",
        "answer": "You can track your order using the tracking number sent to your email. Visit our tracking page or use the tracking link in your confirmation email.",
        "category": "Orders",
    },
    {
        "question": "What payment methods do you accept?",
        "answer": "We accept all major credit cards (Visa, MasterCard, American Express), PayPal, Apple Pay, and Google Pay.",
        "category": "Payment",
    },
    {
        "question": "How do I cancel my order?",
        "answer": "Orders can be cancelled within 1 hour of placement. After that, please contact customer service. Shipped orders cannot be cancelled but can be returned.",
        "category": "Orders",
    },
    {
        "question": "Do you offer international shipping?",
        "answer": "Yes, we ship to over 50 countries worldwide. International shipping takes 7-14 business days and costs vary by destination.",
        "category": "Shipping",
    },
    {
        "question": "Is my payment information secure?",
        "answer": "Yes, we use SSL encryption and are PCI DSS compliant. We never store your full credit card information on our servers.",
        "category": "Payment",
    },
    {
        "question": "How do I create an account?",
        "answer": "Click 'Sign Up' at the top of any page, enter your email and create a password. You can also sign up during checkout.",
        "category": "Account",
    },
    {
        "question": "I forgot my password, what should I do?",
        "answer": "Click 'Forgot Password' on the login page, enter your email, and we'll send you a password reset link.",
        "category": "Account",
    },
    {
        "question": "How do I change my shipping address?",
        "answer": "Log into your account, go to 'Address Book', and add or edit your shipping addresses. You can set a default address for faster checkout.",
        "category": "Account",
    },
]


def load_faqs(path: Path | None) -> list[dict[str, Any]]:
    """Read a list, {"faqs": [...]} or {"questions": [...]} file; fall back to the samples."""
    if path is None:
        return SAMPLE_FAQS
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in ("faqs", "questions"):
            if isinstance(data.get(key), list):
                return data[key]
    raise ValueError(f"{path} does not contain a list of FAQ entries.")


async def seed(faqs: list[dict[str, Any]]) -> int:
    config = get_config()
    store = build_knowledge_store(config)
    if not store.is_available:
        raise KnowledgeStoreError("Knowledge store is not available; check DATABASE_URL.")

    embeddings: dict[int, list[float]] = {}
    provider = build_embedding_provider(config)
    try:
        batch = await provider.embed_batch(
            [{"text": faq["question"], "category": faq.get("category")} for faq in faqs],
            batch_size=config.EMBEDDING_BATCH_SIZE,
            item_delay=config.EMBEDDING_ITEM_DELAY_SECONDS,
            batch_delay=config.EMBEDDING_BATCH_DELAY_SECONDS,
        )
        embeddings = {item.index: item.result.vector for item in batch.embeddings}
        if batch.failed_indexes:
            logger.warning("seed.embedding.partial", extra={"event": "seed.embedding.partial", "failed": batch.failed_indexes})
    except ProviderUnavailable as exc:
        logger.warning("seed.embedding.unavailable", extra={"event": "seed.embedding.unavailable", "error": str(exc)})

    rows = [{**faq, "embedding": embeddings.get(index)} for index, faq in enumerate(faqs)]
    inserted = await store.insert_many(rows)
    logger.info(
        "seed.completed",
        extra={"event": "seed.completed", "inserted": len(inserted), "embedded": len(embeddings)},
    )
    return len(inserted)


def main(argv: list[str]) -> int:
    configure_logging()
    path = Path(argv[1]) if len(argv) > 1 else None
    count = asyncio.run(seed(load_faqs(path)))
    print(f"Seeded {count} FAQ entries.")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
