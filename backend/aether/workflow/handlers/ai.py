# Copyright (c) 2025 adcl.io
# All Rights Reserved.
#
# This software is proprietary and confidential. Unauthorized copying,
# distribution, or use of this software is strictly prohibited.

"""
AI nodes.

All prompts go through ``context.chat`` (an object with an async
``chat(prompt, system_prompt=None, model=None, temperature=None)``), so
provider choice stays outside the handlers. Registered with the "return"
error policy: a provider failure becomes an error payload, not a failed run.
"""

import json
import logging

from aether.core.errors import ConfigurationError
from aether.workflow.expressions import interpolate, to_text
from aether.workflow.registry import ErrorPolicy, NodeHandlerRegistry
from .data import spread

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ["positive", "negative", "neutral"]


def _chat_client(context):
    if context.chat is None:
        raise ConfigurationError("No chat client configured")
    return context.chat


def _text_of(input) -> str:
    if isinstance(input, str):
        return input
    if isinstance(input, dict) and input.get("text"):
        return to_text(input["text"])
    return json.dumps(input, default=str)


def _user_message(input) -> str:
    """Pick the user's message out of a webhook body or previous output"""
    if isinstance(input, str):
        return input
    if isinstance(input, dict):
        body = input.get("body")
        if isinstance(body, dict):
            for key in ("message", "question", "input"):
                if body.get(key):
                    return to_text(body[key])
        for key in ("message", "question", "input"):
            if input.get(key):
                return to_text(input[key])
        if isinstance(body, str):
            return body
    return json.dumps(input, default=str)


async def ai_chat(node, input, context):
    """Prompt the model; adds aiResponse to the input"""
    prompt = node.config.get("prompt") or json.dumps(input, default=str)

    response = await _chat_client(context).chat(
        interpolate(prompt, input),
        system_prompt=node.config.get("systemPrompt"),
        model=node.config.get("model"),
        temperature=node.config.get("temperature", 0.7),
    )

    output = spread(input)
    output["aiResponse"] = response
    return output


async def ai_summarize(node, input, context):
    """Summarize the input text"""
    response = await _chat_client(context).chat(
        f"Please summarize the following content concisely:\n\n{_text_of(input)}",
        system_prompt="You are a helpful assistant that creates clear, concise summaries.",
        model=node.config.get("model"),
    )
    return {"original": input, "summary": response}


async def ai_classify(node, input, context):
    """Classify the input into one of config.categories"""
    categories = node.config.get("categories")
    category_list = ", ".join(categories) if isinstance(categories, list) else ", ".join(DEFAULT_CATEGORIES)
    text = _text_of(input)

    response = await _chat_client(context).chat(
        f"Classify the following text into one of these categories: {category_list}\n\n"
        f"Text: {text}\n\nRespond with just the category name.",
        system_prompt="You are a classification assistant. Respond only with the category name.",
        model=node.config.get("model"),
        temperature=0.1,
    )
    return {"input": text, "category": response.strip(), "categories": categories}


async def ai_transform(node, input, context):
    """Transform the input with a prompt; parses JSON answers"""
    prompt = interpolate(node.config.get("prompt") or "Transform this data", input)

    response = await _chat_client(context).chat(
        f"{prompt}\n\nInput data:\n{json.dumps(input, indent=2, default=str)}",
        system_prompt="You are a data transformation assistant. Output valid JSON when possible.",
        model=node.config.get("model"),
    )

    try:
        return json.loads(response)
    except ValueError:
        return {"transformed": response, "original": input}


async def agent(node, input, context):
    """Conversational agent node"""
    model = node.config.get("model")
    message = _user_message(input)

    logger.info(f"Agent {node.id} executing",
                extra={"node_id": node.id, "model": model, "message_length": len(message)})

    response = await _chat_client(context).chat(
        message,
        system_prompt=node.config.get("systemPrompt"),
        model=model,
    )

    output = spread(input)
    output.update({
        "response": response,
        "aiResponse": response,
        "answer": response,
        "output": response,
        "agent": node.name,
        "model": model,
    })
    return output


def register(registry: NodeHandlerRegistry) -> None:
    policy = {"error_policy": ErrorPolicy.RETURN}
    registry.register("ACTION_AI_CHAT", ai_chat, **policy)
    registry.register("ACTION_AI_SUMMARIZE", ai_summarize, **policy)
    registry.register("ACTION_AI_CLASSIFY", ai_classify, **policy)
    registry.register("ACTION_AI_TRANSFORM", ai_transform, **policy)
    registry.register("AGENT", agent, **policy)
