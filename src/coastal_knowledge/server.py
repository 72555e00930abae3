"""Coastal Knowledge MCP Server."""

import asyncio
import json
import logging
from typing import Any, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool

from .config import Config, load_config, resolve_config_path
from .integrations import MemoryClient
from .repositories import KnowledgeRepository
from .selection import TokenOverlapStrategy
from .tools import SelectionTools, SessionTools, SetupTools, TreeTools

logger = logging.getLogger(__name__)

_SELECTION_CONTEXT_PROPERTIES = {
    "user_id": {
        "type": "string",
        "description": "Requesting user ID",
    },
    "user_role": {
        "type": "string",
        "description": "User role (e.g. Adjuster, Manager)",
    },
    "user_department": {
        "type": "string",
        "description": "Department name, matched loosely (e.g. Claims)",
    },
    "user_state": {
        "type": "string",
        "description": "Jurisdiction code (e.g. FL)",
    },
    "claim_severity": {
        "type": "number",
        "description": "Claim severity",
    },
    "intent": {
        "type": "string",
        "description": "What the user is trying to do, matched against item tags",
    },
    "workflow_context": {
        "type": "string",
        "description": "Current workflow",
    },
}

_NODE_TYPE_PROPERTY = {
    "type": "string",
    "enum": ["department", "subDepartment", "workflow"],
    "description": "Node type",
}

_ITEM_PROPERTIES = {
    "title": {"type": "string", "description": "Item title"},
    "type": {
        "type": "string",
        "enum": ["rule", "command", "smartRule", "sop"],
        "description": "Content type",
    },
    "ai_instructions": {
        "type": "string",
        "description": "AI instructions (rule: max 160 characters)",
    },
    "command_body": {"type": "string", "description": "Command body (command)"},
    "content": {"type": "string", "description": "Procedure or logic text (sop, smartRule)"},
    "scope": {
        "type": "object",
        "description": "Scope: {role: [...], state: [...], severity_max: n, department: [...]}",
    },
    "tags": {
        "type": "array",
        "items": {"type": "string"},
        "description": "Intent tags",
    },
    "priority": {
        "type": "string",
        "enum": ["High", "Medium", "Low"],
        "description": "Priority",
    },
    "order": {"type": "integer", "description": "Order within the same priority"},
    "effective": {"type": "string", "description": "Effective date (ISO 8601)"},
    "sunset": {"type": "string", "description": "Sunset date (ISO 8601)"},
    "is_active": {"type": "boolean", "description": "Active flag"},
}

# Tool definitions
TOOLS = [
    # Setup
    Tool(
        name="get_setup_status",
        description="Show configuration status: every setting with its current and default value.",
        inputSchema={
            "type": "object",
            "properties": {},
        },
    ),
    Tool(
        name="configure",
        description="Change a setting. Writes to config.toml.",
        inputSchema={
            "type": "object",
            "properties": {
                "setting": {
                    "type": "string",
                    "description": "Setting name (e.g. services.memory_server_type, session.user_name)",
                },
                "value": {
                    "type": "string",
                    "description": "New value",
                },
            },
            "required": ["setting", "value"],
        },
    ),
    # Selection
    Tool(
        name="select_knowledge",
        description="Select the knowledge items that apply to a user request and build the AI prompt.",
        inputSchema={
            "type": "object",
            "properties": _SELECTION_CONTEXT_PROPERTIES,
            "required": ["user_id", "user_role", "user_department"],
        },
    ),
    Tool(
        name="select_rules",
        description="Select rules from the legacy flat rule list and build the AI prompt.",
        inputSchema={
            "type": "object",
            "properties": _SELECTION_CONTEXT_PROPERTIES,
            "required": ["user_id", "user_role", "user_department"],
        },
    ),
    Tool(
        name="review_conflicts",
        description="List potentially conflicting high-priority rules for human review.",
        inputSchema={
            "type": "object",
            "properties": {
                "department": {
                    "type": "string",
                    "description": "Limit the review to one department (optional)",
                },
            },
        },
    ),
    # Knowledge tree
    Tool(
        name="get_knowledge_tree",
        description="Get the full department / workflow / knowledge item tree.",
        inputSchema={
            "type": "object",
            "properties": {},
        },
    ),
    Tool(
        name="add_department",
        description="Add a department.",
        inputSchema={
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Department name"},
                "description": {"type": "string", "description": "Description"},
            },
            "required": ["name"],
        },
    ),
    Tool(
        name="add_sub_department",
        description="Add a sub-department to a department.",
        inputSchema={
            "type": "object",
            "properties": {
                "department_id": {"type": "string", "description": "Parent department ID"},
                "name": {"type": "string", "description": "Sub-department name"},
                "description": {"type": "string", "description": "Description"},
            },
            "required": ["department_id", "name"],
        },
    ),
    Tool(
        name="add_workflow",
        description="Add a workflow to a sub-department.",
        inputSchema={
            "type": "object",
            "properties": {
                "department_id": {"type": "string", "description": "Department ID"},
                "sub_department_id": {"type": "string", "description": "Parent sub-department ID"},
                "name": {"type": "string", "description": "Workflow name"},
                "description": {"type": "string", "description": "Description"},
            },
            "required": ["department_id", "sub_department_id", "name"],
        },
    ),
    Tool(
        name="rename_node",
        description="Rename a department, sub-department or workflow.",
        inputSchema={
            "type": "object",
            "properties": {
                "node_type": _NODE_TYPE_PROPERTY,
                "node_id": {"type": "string", "description": "Node ID"},
                "new_name": {"type": "string", "description": "New name"},
            },
            "required": ["node_type", "node_id", "new_name"],
        },
    ),
    Tool(
        name="delete_node",
        description="Delete a department, sub-department or workflow with everything under it.",
        inputSchema={
            "type": "object",
            "properties": {
                "node_type": _NODE_TYPE_PROPERTY,
                "node_id": {"type": "string", "description": "Node ID"},
            },
            "required": ["node_type", "node_id"],
        },
    ),
    Tool(
        name="add_knowledge_item",
        description="Add a rule, command, smart rule or SOP to a workflow.",
        inputSchema={
            "type": "object",
            "properties": {
                "workflow_id": {"type": "string", "description": "Target workflow ID"},
                **_ITEM_PROPERTIES,
                "change_note": {"type": "string", "description": "Reason for the change"},
            },
            "required": ["workflow_id", "title", "type"],
        },
    ),
    Tool(
        name="update_knowledge_item",
        description="Update fields of a knowledge item. The item version is bumped.",
        inputSchema={
            "type": "object",
            "properties": {
                "item_id": {"type": "string", "description": "Knowledge item ID"},
                **_ITEM_PROPERTIES,
                "change_note": {"type": "string", "description": "Reason for the change"},
            },
            "required": ["item_id"],
        },
    ),
    Tool(
        name="delete_knowledge_item",
        description="Delete a knowledge item.",
        inputSchema={
            "type": "object",
            "properties": {
                "item_id": {"type": "string", "description": "Knowledge item ID"},
            },
            "required": ["item_id"],
        },
    ),
    # Assistant sessions
    Tool(
        name="start_assistant_session",
        description="Start a session that carries context between assistants.",
        inputSchema={
            "type": "object",
            "properties": {
                "user_id": {"type": "string", "description": "User ID"},
                "claim_id": {"type": "string", "description": "Claim ID (optional)"},
            },
            "required": ["user_id"],
        },
    ),
    Tool(
        name="get_assistant_session",
        description="Get an assistant session.",
        inputSchema={
            "type": "object",
            "properties": {
                "session_id": {"type": "string", "description": "Session ID"},
            },
            "required": ["session_id"],
        },
    ),
    Tool(
        name="update_assistant_session",
        description="Update session summaries. Extends the session expiry.",
        inputSchema={
            "type": "object",
            "properties": {
                "session_id": {"type": "string", "description": "Session ID"},
                "claim_id": {"type": "string", "description": "Claim ID"},
                "policy_review_summary": {"type": "string", "description": "Policy review summary"},
                "scope_notes": {"type": "string", "description": "Scope notes"},
                "estimate_details": {"type": "string", "description": "Estimate details"},
            },
            "required": ["session_id"],
        },
    ),
    Tool(
        name="record_assistant_handoff",
        description="Record that an assistant took over the session.",
        inputSchema={
            "type": "object",
            "properties": {
                "session_id": {"type": "string", "description": "Session ID"},
                "assistant": {"type": "string", "description": "Assistant name"},
                "context": {"type": "string", "description": "Handoff context"},
                "handoff_type": {
                    "type": "string",
                    "enum": ["automatic", "manual", "timeout"],
                    "description": "Handoff type",
                },
            },
            "required": ["session_id", "assistant"],
        },
    ),
    Tool(
        name="reset_assistant_session",
        description="Delete an assistant session.",
        inputSchema={
            "type": "object",
            "properties": {
                "session_id": {"type": "string", "description": "Session ID"},
            },
            "required": ["session_id"],
        },
    ),
    Tool(
        name="list_assistant_sessions",
        description="List assistant sessions that have not expired.",
        inputSchema={
            "type": "object",
            "properties": {},
        },
    ),
    Tool(
        name="get_handoff_context",
        description="Build the context block for the next assistant in the session.",
        inputSchema={
            "type": "object",
            "properties": {
                "session_id": {"type": "string", "description": "Session ID"},
                "target_assistant": {
                    "type": "string",
                    "description": "Assistant receiving the handoff (e.g. CCS Scope Pro)",
                },
            },
            "required": ["session_id", "target_assistant"],
        },
    ),
]

_ITEM_FIELDS = [
    "title",
    "type",
    "ai_instructions",
    "command_body",
    "content",
    "scope",
    "tags",
    "priority",
    "order",
    "effective",
    "sunset",
    "is_active",
]


class KnowledgeServer:
    """Coastal Knowledge MCP Server."""

    def __init__(self, config: Optional[Config] = None):
        """Initialize the server.

        Args:
            config: Configuration (default: loaded from config.toml on first call)
        """
        self.server = Server("coastal-knowledge")
        self.config = config
        self._initialized = False

        # Initialized lazily
        self._memory_client: Optional[MemoryClient] = None
        self._repository: Optional[KnowledgeRepository] = None
        self._setup_tools: Optional[SetupTools] = None
        self._selection_tools: Optional[SelectionTools] = None
        self._tree_tools: Optional[TreeTools] = None
        self._session_tools: Optional[SessionTools] = None

        self._register_handlers()

    def _register_handlers(self):
        """Register MCP handlers."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            return TOOLS

        @self.server.call_tool()
        async def call_tool(name: str, arguments: dict) -> list[TextContent]:
            return await self._handle_tool_call(name, arguments)

    async def _ensure_initialized(self, timeout: float = 30.0):
        """Ensure the server is initialized.

        Args:
            timeout: Initialization timeout in seconds
        """
        if self._initialized:
            return

        try:
            await asyncio.wait_for(self._do_initialization(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.error(f"Server initialization timed out after {timeout} seconds")
            raise RuntimeError(f"Initialization timeout after {timeout}s. Check the memory server connection.")

    async def _do_initialization(self):
        """Perform actual initialization."""
        if self.config is None:
            self.config = load_config(resolve_config_path())

        errors = self.config.validate()
        if errors:
            raise ValueError(f"Invalid configuration: {'; '.join(errors)}")

        self._memory_client = self._create_memory_client()

        self._repository = KnowledgeRepository(
            self._memory_client,
            seed_default_tree=self.config.store.seed_default_tree,
        )

        self._selection_tools = SelectionTools(
            repository=self._repository,
            conflict_strategy=TokenOverlapStrategy(
                min_token_length=self.config.selection.conflict_min_token_length,
                min_shared_tokens=self.config.selection.conflict_min_shared_tokens,
            ),
        )
        self._tree_tools = TreeTools(
            repository=self._repository,
            user_name=self.config.user_name,
        )
        self._session_tools = SessionTools(
            memory_client=self._memory_client,
            ttl_hours=self.config.session.ttl_hours,
            max_history=self.config.session.max_history,
        )

        self._initialized = True
        logger.info(f"Coastal Knowledge initialized (store: {self._memory_client.protocol})")

    def _create_memory_client(self) -> MemoryClient:
        """Create the configured store, falling back to the local file."""
        if self.config.memory_type == "rest":
            client = MemoryClient(
                base_url=self.config.memory_url,
                timeout=self.config.services.request_timeout,
                connect_timeout=3.0,
                protocol="rest",
                max_retries=self.config.services.max_retries,
            )
            if client.is_available:
                return client

            client.close()
            logger.info(
                "Memory server is not available. "
                f"Knowledge will be stored locally in {self.config.store_path}."
            )

        return MemoryClient(protocol="local", local_path=self.config.store_path)

    def _get_setup_tools(self) -> SetupTools:
        if not self._setup_tools:
            config_path = resolve_config_path()
            self._setup_tools = SetupTools(str(config_path) if config_path else None)
        return self._setup_tools

    async def _handle_tool_call(
        self,
        name: str,
        arguments: dict,
    ) -> list[TextContent]:
        """Handle a tool call."""
        try:
            # Setup tools work before (and without) a valid configuration
            if name not in ("get_setup_status", "configure"):
                await self._ensure_initialized()
            result = await self._dispatch_tool(name, arguments or {})
            return [TextContent(type="text", text=json.dumps(result, ensure_ascii=False, default=str))]
        except Exception as e:
            logger.exception(f"Tool call failed: {name}")
            return [TextContent(type="text", text=json.dumps({
                "success": False,
                "error": str(e),
            }, ensure_ascii=False))]

    async def _dispatch_tool(self, name: str, args: dict) -> dict:
        """Dispatch tool call to appropriate handler."""

        # Setup
        if name == "get_setup_status":
            result = self._get_setup_tools().get_setup_status()
            return {
                "success": result.success,
                "settings": [
                    {
                        "name": s.name,
                        "configured": s.configured,
                        "current_value": s.current_value,
                        "default_value": s.default_value,
                        "description": s.description,
                    }
                    for s in result.settings
                ],
                "config_file_path": result.config_file_path,
                "config_file_exists": result.config_file_exists,
                "message": result.message,
            }

        elif name == "configure":
            result = self._get_setup_tools().configure(
                setting=args["setting"],
                value=args["value"],
            )
            return {
                "success": result.success,
                "setting_name": result.setting_name,
                "old_value": result.old_value,
                "new_value": result.new_value,
                "validation_errors": result.validation_errors,
                "message": result.message,
            }

        # Selection
        elif name in ("select_knowledge", "select_rules"):
            select = (
                self._selection_tools.select_knowledge
                if name == "select_knowledge"
                else self._selection_tools.select_rules
            )
            result = select(
                user_id=args["user_id"],
                user_role=args["user_role"],
                user_department=args["user_department"],
                user_state=args.get("user_state"),
                claim_severity=args.get("claim_severity"),
                intent=args.get("intent"),
                workflow_context=args.get("workflow_context"),
            )
            return {
                "success": result.success,
                **(result.selection.to_dict() if result.selection else {}),
                "prompt": result.prompt,
                "message": result.message,
            }

        elif name == "review_conflicts":
            result = self._selection_tools.review_conflicts(department=args.get("department"))
            return {
                "success": result.success,
                "reviewed_count": result.reviewed_count,
                "conflicts": [c.to_dict() for c in result.conflicts],
                "message": result.message,
            }

        # Knowledge tree
        elif name == "get_knowledge_tree":
            tree = self._tree_tools.get_tree()
            return {
                "success": True,
                "tree": tree.to_dict(),
                "item_count": tree.count_items(),
            }

        elif name == "add_department":
            result = self._tree_tools.add_department(
                name=args["name"],
                description=args.get("description", ""),
            )
            return self._mutation_response(result)

        elif name == "add_sub_department":
            result = self._tree_tools.add_sub_department(
                department_id=args["department_id"],
                name=args["name"],
                description=args.get("description", ""),
            )
            return self._mutation_response(result)

        elif name == "add_workflow":
            result = self._tree_tools.add_workflow(
                department_id=args["department_id"],
                sub_department_id=args["sub_department_id"],
                name=args["name"],
                description=args.get("description", ""),
            )
            return self._mutation_response(result)

        elif name == "rename_node":
            result = self._tree_tools.rename_node(
                node_type=args["node_type"],
                node_id=args["node_id"],
                new_name=args["new_name"],
            )
            return self._mutation_response(result)

        elif name == "delete_node":
            result = self._tree_tools.delete_node(
                node_type=args["node_type"],
                node_id=args["node_id"],
            )
            return self._mutation_response(result)

        elif name == "add_knowledge_item":
            item_args = {k: args[k] for k in _ITEM_FIELDS if k in args}
            result = self._tree_tools.add_knowledge_item(
                workflow_id=args["workflow_id"],
                change_note=args.get("change_note", ""),
                **item_args,
            )
            return self._item_response(result)

        elif name == "update_knowledge_item":
            updates = {k: args[k] for k in _ITEM_FIELDS if k in args}
            result = self._tree_tools.update_knowledge_item(
                item_id=args["item_id"],
                updates=updates,
                change_note=args.get("change_note", ""),
            )
            return self._item_response(result)

        elif name == "delete_knowledge_item":
            result = self._tree_tools.delete_knowledge_item(args["item_id"])
            return self._item_response(result)

        # Assistant sessions
        elif name == "start_assistant_session":
            result = self._session_tools.create_session(
                user_id=args["user_id"],
                claim_id=args.get("claim_id"),
            )
            return self._session_response(result)

        elif name == "get_assistant_session":
            result = self._session_tools.get_session(args["session_id"])
            return self._session_response(result)

        elif name == "update_assistant_session":
            result = self._session_tools.update_session(
                session_id=args["session_id"],
                claim_id=args.get("claim_id"),
                policy_review_summary=args.get("policy_review_summary"),
                scope_notes=args.get("scope_notes"),
                estimate_details=args.get("estimate_details"),
            )
            return self._session_response(result)

        elif name == "record_assistant_handoff":
            result = self._session_tools.add_to_history(
                session_id=args["session_id"],
                assistant=args["assistant"],
                context=args.get("context", ""),
                handoff_type=args.get("handoff_type", "automatic"),
            )
            return self._session_response(result)

        elif name == "reset_assistant_session":
            result = self._session_tools.reset_session(args["session_id"])
            return self._session_response(result)

        elif name == "list_assistant_sessions":
            sessions = self._session_tools.list_active_sessions()
            return {
                "success": True,
                "sessions": [session.to_dict() for session in sessions],
                "message": f"{len(sessions)} active session(s).",
            }

        elif name == "get_handoff_context":
            result = self._session_tools.inject_to_prompt(
                session_id=args["session_id"],
                target_assistant=args["target_assistant"],
            )
            return {
                "success": result.success,
                "session_id": result.session_id,
                "target_assistant": result.target_assistant,
                "context_prompt": result.context_prompt,
                "message": result.message,
            }

        else:
            return {"success": False, "error": f"Unknown tool: {name}"}

    def _mutation_response(self, result) -> dict[str, Any]:
        return {
            "success": result.success,
            "node_type": result.node_type,
            "node_id": result.node_id,
            "tree_version": result.tree_version,
            "message": result.message,
        }

    def _item_response(self, result) -> dict[str, Any]:
        return {
            "success": result.success,
            "item": result.item.to_dict() if result.item else None,
            "path": result.path,
            "updated_fields": result.updated_fields,
            "validation_errors": result.validation_errors,
            "message": result.message,
        }

    def _session_response(self, result) -> dict[str, Any]:
        return {
            "success": result.success,
            "session": result.session.to_dict() if result.session else None,
            "message": result.message,
        }

    async def run(self):
        """Run the server."""
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )


def main():
    """Entry point."""
    # Load config first to setup logging correctly
    config = load_config(resolve_config_path())
    config.setup_logging()

    server = KnowledgeServer(config)
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
