"""Shared fixtures: a small platform OpenAPI document and fake content sources."""

from __future__ import annotations

import asyncio
import copy
from typing import Any, Dict, List

import pytest

from bungie_api.models import Manifest


def _ref(name: str) -> Dict[str, str]:
    return {"$ref": f"#/components/schemas/{name}"}


def _envelope(payload: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "description": "Look at the Response property for more information.",
        "content": {
            "application/json": {
                "schema": {
                    "type": "object",
                    "properties": {
                        "Response": payload,
                        "ErrorCode": {"type": "integer", "format": "int32"},
                        "ThrottleSeconds": {"type": "integer", "format": "int32"},
                        "ErrorStatus": {"type": "string"},
                        "Message": {"type": "string"},
                        "MessageData": {
                            "type": "object",
                            "additionalProperties": {"type": "string"},
                        },
                    },
                }
            }
        },
    }


SCHEMAS: Dict[str, Any] = {
    "Destiny.Definitions.DestinyInventoryItemDefinition": {
        "type": "object",
        "description": "An item that can go in an inventory.",
        "properties": {
            "displayProperties": _ref("Destiny.Definitions.Common.DestinyDisplayPropertiesDefinition"),
            "hash": {"type": "integer", "format": "uint32"},
            "itemType": {
                "type": "integer",
                "format": "int32",
                "x-enum-reference": _ref("Destiny.DestinyItemType"),
            },
            "summaryItemHash": {
                "type": "integer",
                "format": "uint32",
                "nullable": True,
                "x-mapped-definition": _ref("Destiny.Definitions.DestinyInventoryItemDefinition"),
            },
        },
    },
    "Destiny.Definitions.Common.DestinyDisplayPropertiesDefinition": {
        "type": "object",
        "properties": {
            "name": {"type": "string"},
            "description": {"type": "string"},
            "hasIcon": {"type": "boolean"},
        },
    },
    "Destiny.DestinyItemType": {
        "type": "integer",
        "format": "int32",
        "enum": ["0", "3"],
        "x-enum-values": [
            {"numericValue": "0", "identifier": "None"},
            {"numericValue": "3", "identifier": "Weapon"},
        ],
    },
    "Destiny.DestinyGameVersions": {
        "type": "integer",
        "format": "int32",
        "enum": ["0", "1", "2"],
        "x-enum-values": [
            {"numericValue": "0", "identifier": "None"},
            {"numericValue": "1", "identifier": "Destiny2"},
            {"numericValue": "2", "identifier": "DLC1"},
        ],
        "x-enum-is-bitmask": True,
    },
    "Destiny.Entities.Profiles.DestinyProfileComponent": {
        "type": "object",
        "properties": {
            "versionsOwned": {
                "type": "integer",
                "format": "int32",
                "x-enum-reference": _ref("Destiny.DestinyGameVersions"),
                "x-enum-is-bitmask": True,
            },
            "characterIds": {"type": "array", "items": {"type": "integer", "format": "int64"}},
            "dateLastPlayed": {"type": "string", "format": "date-time"},
        },
    },
    "SingleComponentResponseOfDestinyProfileComponent": {
        "type": "object",
        "properties": {
            "data": _ref("Destiny.Entities.Profiles.DestinyProfileComponent"),
            "privacy": _ref("Components.ComponentPrivacySetting"),
            "disabled": {"type": "boolean", "nullable": True},
        },
    },
    "Components.ComponentPrivacySetting": {
        "type": "integer",
        "format": "int32",
        "enum": ["0", "1"],
        "x-enum-values": [
            {"numericValue": "0", "identifier": "None"},
            {"numericValue": "1", "identifier": "Public"},
        ],
    },
    "Destiny.Responses.DestinyProfileResponse": {
        "type": "object",
        "properties": {
            "profile": _ref("SingleComponentResponseOfDestinyProfileComponent"),
            "responseMintedTimestamp": {"type": "string", "format": "date-time"},
        },
    },
    "BungieMembershipType": {
        "type": "integer",
        "format": "int32",
        "enum": ["0", "3"],
        "x-enum-values": [
            {"numericValue": "0", "identifier": "None"},
            {"numericValue": "3", "identifier": "TigerSteam"},
        ],
    },
    "User.UserSearchPrefixRequest": {
        "type": "object",
        "properties": {"displayNamePrefix": {"type": "string"}},
    },
    "User.UserSearchResponse": {
        "type": "object",
        "properties": {
            "searchResults": {"type": "array", "items": _ref("User.UserSearchResponseDetail")},
            "page": {"type": "integer", "format": "int32"},
            "hasMore": {"type": "boolean"},
        },
    },
    "User.UserSearchResponseDetail": {
        "type": "object",
        "properties": {
            "bungieGlobalDisplayName": {"type": "string"},
            "bungieGlobalDisplayNameCode": {"type": "integer", "format": "int16", "nullable": True},
            "membershipsByType": {
                "type": "object",
                "additionalProperties": {"type": "string"},
                "x-dictionary-key": {
                    "type": "integer",
                    "format": "int32",
                    "x-enum-reference": _ref("BungieMembershipType"),
                },
            },
        },
    },
    "SearchResultOfUserSearchResponseDetail": {
        "type": "object",
        "properties": {
            "results": {"type": "array", "items": _ref("User.UserSearchResponseDetail")},
            "totalResults": {"type": "integer", "format": "int32"},
            "hasMore": {"type": "boolean"},
        },
    },
    "Unreachable.OrphanThing": {
        "type": "object",
        "properties": {"other": _ref("Unreachable.OrphanDependency")},
    },
    "Unreachable.OrphanDependency": {
        "type": "object",
        "properties": {"value": {"type": "string"}},
    },
}

PATHS: Dict[str, Any] = {
    "/Destiny2/{membershipType}/Profile/{destinyMembershipId}/": {
        "summary": "Destiny2.GetProfile",
        "description": "Returns Destiny Profile information for the supplied membership.",
        "get": {
            "operationId": "Destiny2.GetProfile",
            "parameters": [
                {
                    "name": "components",
                    "in": "query",
                    "description": "A comma separated list of components to return.",
                    "schema": {"type": "array", "items": {"type": "integer", "format": "int32"}},
                },
                {
                    "name": "destinyMembershipId",
                    "in": "path",
                    "required": True,
                    "schema": {"type": "integer", "format": "int64"},
                },
                {
                    "name": "membershipType",
                    "in": "path",
                    "required": True,
                    "schema": {
                        "type": "integer",
                        "format": "int32",
                        "x-enum-reference": _ref("BungieMembershipType"),
                    },
                },
            ],
            "responses": {
                "200": {"$ref": "#/components/responses/Destiny.Responses.DestinyProfileResponse"}
            },
        },
    },
    "/User/Search/GlobalName/{page}/": {
        "summary": "User.SearchByGlobalNamePost",
        "description": "Given the prefix of a global display name, returns all users who share that name.",
        "post": {
            "operationId": "User.SearchByGlobalNamePost",
            "parameters": [
                {
                    "name": "page",
                    "in": "path",
                    "required": True,
                    "schema": {"type": "integer", "format": "int32"},
                }
            ],
            "requestBody": {
                "required": True,
                "content": {"application/json": {"schema": _ref("User.UserSearchPrefixRequest")}},
            },
            "responses": {"200": _envelope(_ref("User.UserSearchResponse"))},
        },
    },
    "/User/Search/Prefix/{displayNamePrefix}/": {
        "summary": "User.SearchByPrefix",
        "get": {
            "operationId": "User.SearchByPrefix",
            "deprecated": True,
            "parameters": [
                {"name": "displayNamePrefix", "in": "path", "schema": {"type": "string"}}
            ],
            "responses": {"200": _envelope(_ref("SearchResultOfUserSearchResponseDetail"))},
        },
    },
    "/Destiny2/Manifest/{entityType}/{hashIdentifier}/": {
        "summary": "Destiny2.GetDestinyEntityDefinition",
        "get": {
            "operationId": "Destiny2.GetDestinyEntityDefinition",
            "parameters": [
                {"name": "entityType", "in": "path", "required": True, "schema": {"type": "string"}},
                {
                    "name": "hashIdentifier",
                    "in": "path",
                    "required": True,
                    "schema": {"type": "integer", "format": "uint32"},
                },
            ],
            "security": [{"oauth2": ["ReadBasicUserProfile"]}],
            "responses": {
                "200": _envelope(_ref("Destiny.Definitions.DestinyInventoryItemDefinition"))
            },
        },
    },
}

DOCUMENT: Dict[str, Any] = {
    "openapi": "3.0.0",
    "info": {"title": "Bungie.Net API", "version": "2.18.0"},
    "paths": PATHS,
    "components": {
        "schemas": SCHEMAS,
        "responses": {
            "Destiny.Responses.DestinyProfileResponse": _envelope(
                _ref("Destiny.Responses.DestinyProfileResponse")
            )
        },
    },
}

REACHABLE = [
    "BungieMembershipType",
    "ComponentPrivacySetting",
    "ComponentResponse",
    "DisplayPropertiesDefinition",
    "GameVersions",
    "InventoryItemDefinition",
    "ItemType",
    "ProfileComponent",
    "ProfileResponse",
    "SearchResult",
    "UserSearchPrefixRequestBody",
    "UserSearchResponse",
    "UserSearchResponseDetail",
]


@pytest.fixture
def document() -> Dict[str, Any]:
    return copy.deepcopy(DOCUMENT)


class FakeContentSource:
    """Serves a mutable manifest and tables; counts every fetch.

    Each fetch sleeps for ``delay`` seconds so concurrent callers overlap.
    """

    def __init__(
        self,
        manifest: Manifest,
        tables: Dict[str, Dict[int, Any]],
        delay: float = 0,
    ) -> None:
        self.manifest = manifest
        self.tables = tables
        self.delay = delay
        self.manifest_fetches = 0
        self.table_fetches: List[str] = []

    async def get_manifest(self) -> Manifest:
        self.manifest_fetches += 1
        await asyncio.sleep(self.delay)
        return self.manifest

    async def fetch_table(self, path: str) -> Dict[int, Any]:
        self.table_fetches.append(path)
        await asyncio.sleep(self.delay)
        return dict(self.tables[path])


def manifest(version: str, paths: Dict[str, str], locale: str = "en") -> Manifest:
    return Manifest.model_validate(
        {"version": version, "jsonWorldComponentContentPaths": {locale: paths}}
    )
