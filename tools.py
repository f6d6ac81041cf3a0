import copy
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple

from errors import InvalidArgumentsError, RaindropError, UnknownOperationError
from raindrop_client import RaindropClient
from utils import nest_parent_reference, render_json, split_identifier

logger = logging.getLogger(__name__)

TAGS_SCHEMA = {"type": "array", "items": {"type": "string"}}

TOOL_DEFINITIONS: List[Dict[str, Any]] = [
    # Raindrops (bookmarks)
    {
        "name": "get_raindrop",
        "description": "Get a single bookmark by ID",
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "The raindrop (bookmark) ID"},
            },
            "required": ["id"],
        },
    },
    {
        "name": "get_raindrops",
        "description": (
            "Get bookmarks from a collection with optional search and filtering. "
            "Use collectionId 0 for all bookmarks, -1 for unsorted, -99 for trash."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "collectionId": {
                    "type": "number",
                    "default": 0,
                    "description": "Collection ID (0=all, -1=unsorted, -99=trash)",
                },
                "search": {"type": "string", "description": "Search query text"},
                "page": {
                    "type": "number",
                    "default": 0,
                    "description": "Page number (0-indexed)",
                },
                "perpage": {
                    "type": "number",
                    "default": 25,
                    "description": "Results per page (max 50)",
                },
                "sort": {
                    "type": "string",
                    "default": "-created",
                    "description": (
                        "Sort order: -created (default), created, score, -sort, "
                        "title, -title, domain, -domain"
                    ),
                },
                "nested": {
                    "type": "boolean",
                    "default": False,
                    "description": "Include bookmarks from nested collections",
                },
            },
        },
    },
    {
        "name": "search_raindrops",
        "description": "Search for bookmarks across all collections using text query",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search query text"},
                "page": {
                    "type": "number",
                    "default": 0,
                    "description": "Page number (0-indexed)",
                },
                "perpage": {
                    "type": "number",
                    "default": 25,
                    "description": "Results per page (max 50)",
                },
            },
            "required": ["query"],
        },
    },
    {
        "name": "create_raindrop",
        "description": (
            "Create a new bookmark. At minimum, provide a link URL. "
            "Optionally include title, tags, collection, notes, etc."
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "link": {"type": "string", "description": "URL to bookmark (required)"},
                "title": {
                    "type": "string",
                    "description": "Bookmark title (max 1000 chars)",
                },
                "excerpt": {
                    "type": "string",
                    "description": "Description or excerpt (max 10000 chars)",
                },
                "note": {
                    "type": "string",
                    "description": "Personal notes (max 10000 chars)",
                },
                "collection": {
                    "type": "number",
                    "description": "Collection ID (default: -1 for Unsorted)",
                },
                "tags": {**TAGS_SCHEMA, "description": "Array of tags"},
                "important": {
                    "type": "boolean",
                    "default": False,
                    "description": "Mark as favorite",
                },
                "pleaseParse": {
                    "type": "object",
                    "description": "Auto-parse metadata from URL",
                },
            },
            "required": ["link"],
        },
    },
    {
        "name": "update_raindrop",
        "description": "Update an existing bookmark by ID",
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": {
                    "type": "string",
                    "description": "The raindrop (bookmark) ID to update",
                },
                "link": {"type": "string", "description": "Updated URL"},
                "title": {"type": "string", "description": "Updated title"},
                "excerpt": {"type": "string", "description": "Updated description"},
                "note": {"type": "string", "description": "Updated notes"},
                "collection": {"type": "number", "description": "Move to collection ID"},
                "tags": {**TAGS_SCHEMA, "description": "Updated tags array"},
                "important": {"type": "boolean", "description": "Favorite status"},
            },
            "required": ["id"],
        },
    },
    {
        "name": "delete_raindrop",
        "description": (
            "Delete a bookmark by ID "
            "(moves to trash, or permanently deletes if already in trash)"
        ),
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": {
                    "type": "string",
                    "description": "The raindrop (bookmark) ID to delete",
                },
            },
            "required": ["id"],
        },
    },
    # Collections
    {
        "name": "get_collections",
        "description": "Get all root-level collections",
        "inputSchema": {"type": "object", "properties": {}},
    },
    {
        "name": "get_child_collections",
        "description": "Get all child (nested) collections",
        "inputSchema": {"type": "object", "properties": {}},
    },
    {
        "name": "get_collection",
        "description": "Get a specific collection by ID",
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "The collection ID"},
            },
            "required": ["id"],
        },
    },
    {
        "name": "create_collection",
        "description": "Create a new collection",
        "inputSchema": {
            "type": "object",
            "properties": {
                "title": {"type": "string", "description": "Collection name/title"},
                "view": {
                    "type": "string",
                    "default": "list",
                    "description": "Display view: list, grid, or masonry",
                },
                "sort": {"type": "number", "description": "Sort order number"},
                "public": {
                    "type": "boolean",
                    "default": False,
                    "description": "Make collection publicly accessible",
                },
                "parentId": {
                    "type": "number",
                    "description": "Parent collection ID for nesting",
                },
            },
            "required": ["title"],
        },
    },
    {
        "name": "update_collection",
        "description": "Update an existing collection",
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "The collection ID to update"},
                "title": {"type": "string", "description": "Updated collection name"},
                "view": {
                    "type": "string",
                    "description": "Display view: list, grid, or masonry",
                },
                "sort": {"type": "number", "description": "Sort order number"},
                "public": {"type": "boolean", "description": "Public accessibility"},
                "parentId": {"type": "number", "description": "Parent collection ID"},
                "expanded": {"type": "boolean", "description": "Expand/collapse state"},
            },
            "required": ["id"],
        },
    },
    {
        "name": "delete_collection",
        "description": "Delete a collection by ID",
        "inputSchema": {
            "type": "object",
            "properties": {
                "id": {"type": "string", "description": "The collection ID to delete"},
            },
            "required": ["id"],
        },
    },
    {
        "name": "delete_collections",
        "description": "Delete multiple collections at once",
        "inputSchema": {
            "type": "object",
            "properties": {
                "ids": {
                    "type": "array",
                    "items": {"type": "number"},
                    "description": "Array of collection IDs to delete",
                },
            },
            "required": ["ids"],
        },
    },
    # Tags
    {
        "name": "get_tags",
        "description": "Get all tags, optionally filtered by collection",
        "inputSchema": {
            "type": "object",
            "properties": {
                "collectionId": {
                    "type": "number",
                    "description": "Optional collection ID to filter tags",
                },
            },
        },
    },
    {
        "name": "rename_tag",
        "description": "Rename a tag across all or specific collection",
        "inputSchema": {
            "type": "object",
            "properties": {
                "oldTag": {"type": "string", "description": "Current tag name"},
                "newTag": {"type": "string", "description": "New tag name"},
                "collectionId": {
                    "type": "number",
                    "description": "Optional collection ID to limit scope",
                },
            },
            "required": ["oldTag", "newTag"],
        },
    },
    {
        "name": "merge_tags",
        "description": "Merge multiple tags into one",
        "inputSchema": {
            "type": "object",
            "properties": {
                "oldTags": {**TAGS_SCHEMA, "description": "Array of tag names to merge"},
                "newTag": {"type": "string", "description": "Target tag name"},
                "collectionId": {
                    "type": "number",
                    "description": "Optional collection ID to limit scope",
                },
            },
            "required": ["oldTags", "newTag"],
        },
    },
    {
        "name": "delete_tags",
        "description": "Delete one or more tags",
        "inputSchema": {
            "type": "object",
            "properties": {
                "tags": {**TAGS_SCHEMA, "description": "Array of tag names to delete"},
                "collectionId": {
                    "type": "number",
                    "description": "Optional collection ID to limit scope",
                },
            },
            "required": ["tags"],
        },
    },
    # User
    {
        "name": "get_user",
        "description": "Get current user information",
        "inputSchema": {"type": "object", "properties": {}},
    },
]

_DEFINITIONS_BY_NAME = {tool["name"]: tool for tool in TOOL_DEFINITIONS}

# A handler returns the API result and an optional confirmation line
HandlerResult = Tuple[Any, Optional[str]]
Handler = Callable[[RaindropClient, Dict[str, Any]], Awaitable[HandlerResult]]


def list_tools() -> List[Dict[str, Any]]:
    """Return the tool descriptors; callers get their own copy"""
    return copy.deepcopy(TOOL_DEFINITIONS)


def prepare_arguments(name: str, arguments: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Check required arguments and drop anything the tool does not declare

    Args:
        name: Tool name
        arguments: Raw arguments from the caller (may be None)

    Returns:
        Arguments limited to the tool's declared properties

    Raises:
        UnknownOperationError: name is not a registered tool
        InvalidArgumentsError: a required argument is missing
    """
    definition = _DEFINITIONS_BY_NAME.get(name)
    if definition is None:
        raise UnknownOperationError(name)

    schema = definition["inputSchema"]
    arguments = arguments or {}

    missing = [key for key in schema.get("required", []) if arguments.get(key) is None]
    if missing:
        raise InvalidArgumentsError(name, missing)

    declared = schema["properties"]
    not_lists = [
        key
        for key, prop in declared.items()
        if prop.get("type") == "array"
        and arguments.get(key) is not None
        and not isinstance(arguments[key], list)
    ]
    if not_lists:
        raise InvalidArgumentsError(name, not_lists, reason="must be an array")

    ignored = [key for key in arguments if key not in declared]
    if ignored:
        logger.debug(f"Ignoring undeclared arguments for {name}: {ignored}")

    return {k: v for k, v in arguments.items() if k in declared}


# Raindrop handlers


async def get_raindrop_tool(client: RaindropClient, args: Dict[str, Any]) -> HandlerResult:
    return await client.get_raindrop(args["id"]), None


async def get_raindrops_tool(client: RaindropClient, args: Dict[str, Any]) -> HandlerResult:
    collection_id = args.get("collectionId")
    if collection_id is None:
        collection_id = 0

    result = await client.get_raindrops(
        collection_id,
        page=args.get("page"),
        perpage=args.get("perpage"),
        search=args.get("search"),
        sort=args.get("sort"),
        nested=args.get("nested"),
    )
    return result, None


async def search_raindrops_tool(client: RaindropClient, args: Dict[str, Any]) -> HandlerResult:
    result = await client.search_raindrops(
        args["query"], page=args.get("page"), perpage=args.get("perpage")
    )
    return result, None


async def create_raindrop_tool(client: RaindropClient, args: Dict[str, Any]) -> HandlerResult:
    # pleaseParse is forwarded verbatim, its shape belongs to the API
    result = await client.create_raindrop(dict(args))
    return result, "Bookmark created successfully!"


async def update_raindrop_tool(client: RaindropClient, args: Dict[str, Any]) -> HandlerResult:
    raindrop_id, fields = split_identifier(args)
    result = await client.update_raindrop(raindrop_id, fields)
    return result, "Bookmark updated successfully!"


async def delete_raindrop_tool(client: RaindropClient, args: Dict[str, Any]) -> HandlerResult:
    return await client.delete_raindrop(args["id"]), "Bookmark deleted successfully!"


# Collection handlers


async def get_collections_tool(client: RaindropClient, args: Dict[str, Any]) -> HandlerResult:
    return await client.get_collections(), None


async def get_child_collections_tool(
    client: RaindropClient, args: Dict[str, Any]
) -> HandlerResult:
    return await client.get_child_collections(), None


async def get_collection_tool(client: RaindropClient, args: Dict[str, Any]) -> HandlerResult:
    return await client.get_collection(args["id"]), None


async def create_collection_tool(client: RaindropClient, args: Dict[str, Any]) -> HandlerResult:
    result = await client.create_collection(nest_parent_reference(args))
    return result, "Collection created successfully!"


async def update_collection_tool(client: RaindropClient, args: Dict[str, Any]) -> HandlerResult:
    collection_id, fields = split_identifier(args)
    result = await client.update_collection(collection_id, nest_parent_reference(fields))
    return result, "Collection updated successfully!"


async def delete_collection_tool(client: RaindropClient, args: Dict[str, Any]) -> HandlerResult:
    return await client.delete_collection(args["id"]), "Collection deleted successfully!"


async def delete_collections_tool(
    client: RaindropClient, args: Dict[str, Any]
) -> HandlerResult:
    result = await client.delete_collections(args["ids"])
    return result, "Collections deleted successfully!"


# Tag handlers


async def get_tags_tool(client: RaindropClient, args: Dict[str, Any]) -> HandlerResult:
    return await client.get_tags(args.get("collectionId")), None


async def rename_tag_tool(client: RaindropClient, args: Dict[str, Any]) -> HandlerResult:
    old_tag, new_tag = args["oldTag"], args["newTag"]
    result = await client.rename_tag(old_tag, new_tag, args.get("collectionId"))
    return result, f'Tag renamed successfully from "{old_tag}" to "{new_tag}"!'


async def merge_tags_tool(client: RaindropClient, args: Dict[str, Any]) -> HandlerResult:
    new_tag = args["newTag"]
    result = await client.merge_tags(args["oldTags"], new_tag, args.get("collectionId"))
    return result, f'Tags merged successfully into "{new_tag}"!'


async def delete_tags_tool(client: RaindropClient, args: Dict[str, Any]) -> HandlerResult:
    result = await client.delete_tags(args["tags"], args.get("collectionId"))
    return result, "Tags deleted successfully!"


# User handlers


async def get_user_tool(client: RaindropClient, args: Dict[str, Any]) -> HandlerResult:
    return await client.get_current_user(), None


TOOL_HANDLERS: Dict[str, Handler] = {
    "get_raindrop": get_raindrop_tool,
    "get_raindrops": get_raindrops_tool,
    "search_raindrops": search_raindrops_tool,
    "create_raindrop": create_raindrop_tool,
    "update_raindrop": update_raindrop_tool,
    "delete_raindrop": delete_raindrop_tool,
    "get_collections": get_collections_tool,
    "get_child_collections": get_child_collections_tool,
    "get_collection": get_collection_tool,
    "create_collection": create_collection_tool,
    "update_collection": update_collection_tool,
    "delete_collection": delete_collection_tool,
    "delete_collections": delete_collections_tool,
    "get_tags": get_tags_tool,
    "rename_tag": rename_tag_tool,
    "merge_tags": merge_tags_tool,
    "delete_tags": delete_tags_tool,
    "get_user": get_user_tool,
}


def text_result(text: str, is_error: bool = False) -> Dict[str, Any]:
    result: Dict[str, Any] = {"content": [{"type": "text", "text": text}]}
    if is_error:
        result["isError"] = True
    return result


class ToolDispatcher:
    """Routes one tool invocation to the Raindrop client"""

    def __init__(self, client: RaindropClient):
        self.client = client

    async def call_tool(
        self, name: str, arguments: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Run a tool and wrap the outcome in an MCP tool result

        Never raises: every failure becomes a result with isError set.

        Args:
            name: Tool name
            arguments: Tool arguments

        Returns:
            {"content": [{"type": "text", "text": ...}], "isError"?: True}
        """
        try:
            args = prepare_arguments(name, arguments)
            result, confirmation = await TOOL_HANDLERS[name](self.client, args)

        except RaindropError as e:
            logger.warning(f"Tool {name} failed ({e.kind.value}): {e.message}")
            return text_result(f"Error: {e.message}", is_error=True)

        except Exception as e:
            logger.error(f"Error calling tool {name}: {e}", exc_info=True)
            return text_result(f"Error: {e}", is_error=True)

        text = render_json(result)
        if confirmation:
            text = f"{confirmation}\n\n{text}"
        return text_result(text)
