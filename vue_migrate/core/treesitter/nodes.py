"""
Small helpers over tree-sitter nodes.

All offsets reported by tree-sitter are byte offsets into the UTF-8 encoded
source, so every slice here is taken from ``bytes`` and decoded afterwards.
"""

from typing import Iterator, List, Optional

from tree_sitter import Node

FUNCTION_NODE_TYPES = {"function_expression", "function", "arrow_function", "generator_function"}
STRING_NODE_TYPES = {"string", "template_string"}


def node_text(data: bytes, node: Optional[Node]) -> str:
    if node is None:
        return ""
    return data[node.start_byte:node.end_byte].decode("utf-8", errors="replace")


def walk(node: Node) -> Iterator[Node]:
    """Yield ``node`` and all of its descendants in document order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def strip_quotes(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"', "`"):
        return value[1:-1]
    return value


def unwrap_parens(node: Optional[Node]) -> Optional[Node]:
    while node is not None and node.type == "parenthesized_expression":
        inner = [c for c in node.named_children if c.type != "comment"]
        if not inner:
            break
        node = inner[0]
    return node


def call_arguments(call: Node) -> List[Node]:
    args = call.child_by_field_name("arguments")
    if args is None:
        return []
    return [c for c in args.named_children if c.type != "comment"]


def is_this(node: Optional[Node]) -> bool:
    return node is not None and node.type == "this"


def member_chain(data: bytes, node: Node) -> Optional[List[str]]:
    """
    Flatten a dotted member expression rooted at ``this``.

    ``this.$store.state.user`` yields ``["this", "$store", "state", "user"]``.
    Returns None when the chain contains calls, subscripts or another root.
    """
    parts: List[str] = []
    current = node
    while current is not None and current.type == "member_expression":
        parts.append(node_text(data, current.child_by_field_name("property")))
        current = current.child_by_field_name("object")
    if not is_this(current):
        return None
    parts.append("this")
    parts.reverse()
    return parts


def string_value(data: bytes, node: Optional[Node]) -> Optional[str]:
    """Content of a plain string literal, or None for anything else."""
    if node is None or node.type != "string":
        return None
    return strip_quotes(node_text(data, node))


def property_key(data: bytes, node: Node) -> str:
    """Name of an object member (pair, method definition or shorthand)."""
    if node.type == "shorthand_property_identifier":
        return node_text(data, node)
    key = node.child_by_field_name("key") or node.child_by_field_name("name")
    if key is None:
        return ""
    return strip_quotes(node_text(data, key))


def is_async(node: Node) -> bool:
    return any(child.type == "async" for child in node.children)


def function_parts(data: bytes, node: Node):
    """
    Return ``(parameters, body, is_async)`` for a method definition or function value.

    Expression-bodied arrow functions are normalized to a block that returns
    the expression, so callers always receive a ``{...}`` block.
    """
    params_node = node.child_by_field_name("parameters") or node.child_by_field_name("parameter")
    params = node_text(data, params_node) if params_node is not None else "()"
    if params_node is not None and params_node.type != "formal_parameters":
        params = f"({params})"
    body_node = node.child_by_field_name("body")
    if body_node is None:
        body = "{}"
    elif body_node.type == "statement_block":
        body = node_text(data, body_node)
    else:
        body = "{\n  return " + node_text(data, body_node) + ";\n}"
    return params, body, is_async(node)


def object_members(node: Optional[Node]) -> List[Node]:
    """Named members of an object literal, comments excluded."""
    node = unwrap_parens(node)
    if node is None or node.type != "object":
        return []
    return [c for c in node.named_children if c.type != "comment"]


def return_statements(body: Node) -> Iterator[Node]:
    """Return statements of a function body, not descending into nested functions."""
    stack = list(reversed(body.children))
    while stack:
        current = stack.pop()
        if current.type in FUNCTION_NODE_TYPES or current.type == "method_definition":
            continue
        if current.type == "return_statement":
            yield current
            continue
        stack.extend(reversed(current.children))


def returned_value(statement: Node) -> Optional[Node]:
    return unwrap_parens(next((c for c in statement.named_children if c.type != "comment"), None))


def find_returned_object(body: Node) -> Optional[Node]:
    """First ``return {...}`` object of a function body."""
    for statement in return_statements(body):
        value = returned_value(statement)
        if value is not None and value.type == "object":
            return value
    return None
