"""
Output schema for memory extraction.

The model answers with one JSON object using the camelCase keys below. Keys
outside the schema are ignored by the parser.
"""

from __future__ import annotations

from typing import Any

from sylvia.stores.brand import BRAND_FIELDS
from sylvia.stores.clients import CLIENT_FIELDS
from sylvia.stores.performers import PERFORMER_FIELDS

_STRING = {"type": "string"}
_STRING_LIST = {"type": "array", "items": _STRING}

PROCESSING_RESULT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "clientUpdates": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "clientName": _STRING,
                    "field": {"type": "string", "enum": list(CLIENT_FIELDS)},
                    "content": _STRING,
                },
                "required": ["clientName", "field", "content"],
            },
        },
        "brandUpdates": {
            "type": ["object", "null"],
            "properties": {
                "field": {"type": "string", "enum": list(BRAND_FIELDS)},
                "content": _STRING,
            },
        },
        "performerUpdates": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "performerName": _STRING,
                    "field": {"type": "string", "enum": list(PERFORMER_FIELDS)},
                    "content": _STRING,
                },
                "required": ["performerName", "field", "content"],
            },
        },
        "calendarEntries": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "date": {"type": "string", "description": "YYYY-MM-DD"},
                    "content": _STRING,
                },
                "required": ["date", "content"],
            },
        },
        "knowledgeConnections": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "entity": _STRING,
                    "relatedTo": _STRING_LIST,
                    "relationshipType": _STRING,
                },
                "required": ["entity", "relatedTo"],
            },
        },
        "interactionEvents": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "participants": _STRING_LIST,
                    "intrigueTags": _STRING_LIST,
                    "sentiment": {"type": "number", "minimum": -1, "maximum": 1},
                },
                "required": ["participants"],
            },
        },
        "rerankedRelevance": {"type": "number", "minimum": 0, "maximum": 10},
        "reasoning": _STRING,
    },
    "required": ["rerankedRelevance", "reasoning"],
}

RESPONSE_KEYS = tuple(PROCESSING_RESULT_SCHEMA["properties"])

__all__ = ["PROCESSING_RESULT_SCHEMA", "RESPONSE_KEYS"]
