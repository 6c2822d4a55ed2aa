"""
component_transpiler.py - Turn React component source into an inline browser script.

Usage:
    code = transpile("export function App() { return <div>Hi</div>; }")

Module syntax is lowered to `require()` / `exports.X = ...` against the
shims the harness page defines, and JSX is lowered to React.createElement.
"""

from __future__ import annotations

import html
import json
import logging
import re

import tree_sitter_javascript
from tree_sitter import Language, Node, Parser, Tree

import config
from perf_errors import ParseError, TransformError

logger = logging.getLogger(__name__)

JS_LANGUAGE = Language(tree_sitter_javascript.language())

JSX_ELEMENTS = {"jsx_element", "jsx_self_closing_element"}
JSX_TEXT = {"jsx_text", "html_character_reference"}
DECLARATIONS_WITH_NAME = {
    "function_declaration",
    "generator_function_declaration",
    "class_declaration",
}

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][\w$]*$")


def _first_error(node: Node) -> Node | None:
    if node.is_error or node.is_missing:
        return node
    for child in node.children:
        if child.has_error or child.is_missing:
            found = _first_error(child)
            if found is not None:
                return found
    return None


def parse_component(source: str) -> Tree:
    """Parse component source as an ES module with JSX enabled."""
    tree = Parser(JS_LANGUAGE).parse(source.encode("utf-8"))
    if tree.root_node.has_error:
        bad = _first_error(tree.root_node) or tree.root_node
        line, column = bad.start_point[0] + 1, bad.start_point[1] + 1
        what = f"missing {bad.type}" if bad.is_missing else "unexpected token"
        raise ParseError(f"Failed to parse code: Line {line}:{column}: {what}", line=line, column=column)
    return tree


def _text(node: Node) -> str:
    return node.text.decode("utf-8")


def _string_value(node: Node) -> str:
    return _text(node)[1:-1]


def _is_framework_import(node: Node) -> bool:
    if node.type != "import_statement":
        return False
    source = node.child_by_field_name("source")
    return source is not None and _string_value(source) in config.FRAMEWORK_MODULES


def _import_replacement(node: Node) -> str:
    module = json.dumps(_string_value(node.child_by_field_name("source")))
    clause = next((c for c in node.named_children if c.type == "import_clause"), None)
    if clause is None:
        return f"require({module});"

    statements = []
    for part in clause.named_children:
        if part.type == "identifier":
            statements.append(f"const {_text(part)} = require({module}).default;")
        elif part.type == "namespace_import":
            local = next(c for c in part.named_children if c.type == "identifier")
            statements.append(f"const {_text(local)} = require({module});")
        elif part.type == "named_imports":
            bindings = []
            for specifier in part.named_children:
                if specifier.type != "import_specifier":
                    continue
                name = _text(specifier.child_by_field_name("name"))
                alias = specifier.child_by_field_name("alias")
                bindings.append(f"{name}: {_text(alias)}" if alias else name)
            statements.append(f"const {{ {', '.join(bindings)} }} = require({module});")
    return " ".join(statements)


def _declared_names(decl: Node) -> list[str]:
    if decl.type in DECLARATIONS_WITH_NAME:
        name = decl.child_by_field_name("name")
        return [_text(name)] if name is not None else []
    names = []
    for declarator in decl.named_children:
        if declarator.type != "variable_declarator":
            continue
        name = declarator.child_by_field_name("name")
        if name is not None and name.type == "identifier":
            names.append(_text(name))
    return names


def _export_specifiers(clause: Node) -> list[tuple[str, str]]:
    pairs = []
    for specifier in clause.named_children:
        if specifier.type != "export_specifier":
            continue
        local = _text(specifier.child_by_field_name("name"))
        alias = specifier.child_by_field_name("alias")
        pairs.append((local, _text(alias) if alias else local))
    return pairs


def _export_edits(node: Node) -> list[tuple[int, int, str]]:
    start, end = node.start_byte, node.end_byte
    is_default = any(c.type == "default" for c in node.children)
    decl = node.child_by_field_name("declaration")
    value = node.child_by_field_name("value")
    source = node.child_by_field_name("source")

    if decl is not None:
        names = _declared_names(decl)
        if is_default:
            assigns = [f"exports.default = {names[0]};"] if names else []
        else:
            assigns = [f"exports.{name} = {name};" for name in names]
        edits = [(start, decl.start_byte, "")]
        if assigns:
            edits.append((end, end, "\n" + " ".join(assigns)))
        return edits

    if value is not None:
        return [(start, value.start_byte, "exports.default = ")]

    clause = next((c for c in node.named_children if c.type == "export_clause"), None)
    if source is not None:
        module = json.dumps(_string_value(source))
        namespace = next((c for c in node.named_children if c.type == "namespace_export"), None)
        if clause is not None:
            assigns = [f"exports.{alias} = require({module}).{local};" for local, alias in _export_specifiers(clause)]
            return [(start, end, " ".join(assigns))]
        if namespace is not None:
            alias = [c for c in namespace.named_children if c.type == "identifier"][-1]
            return [(start, end, f"exports.{_text(alias)} = require({module});")]
        return [(start, end, f"Object.assign(exports, require({module}));")]

    if clause is not None:
        assigns = [f"exports.{alias} = {local};" for local, alias in _export_specifiers(clause)]
        return [(start, end, " ".join(assigns))]
    return []


def rewrite_module(source: str, tree: Tree) -> str:
    """
    Drop react/react-dom imports, turn the remaining module syntax into
    require()/exports statements. Everything else is kept byte for byte.
    """
    edits: list[tuple[int, int, str]] = []
    removed = 0
    for node in tree.root_node.named_children:
        if _is_framework_import(node):
            edits.append((node.start_byte, node.end_byte, ""))
            removed += 1
        elif node.type == "import_statement":
            edits.append((node.start_byte, node.end_byte, _import_replacement(node)))
        elif node.type == "export_statement":
            edits.extend(_export_edits(node))

    out = source.encode("utf-8")
    for start, end, replacement in sorted(edits, reverse=True):
        out = out[:start] + replacement.encode("utf-8") + out[end:]

    logger.debug(f"Removed {removed} framework import(s), {len(edits) - removed} module edit(s)")
    return out.decode("utf-8")


def clean_jsx_text(raw: str) -> str:
    """Collapse JSX text the way React's JSX transform does, then decode entities."""
    lines = re.split(r"\r\n|\n|\r", raw)
    last_non_empty = max((i for i, line in enumerate(lines) if re.search(r"[^ \t]", line)), default=-1)
    out = ""
    for i, line in enumerate(lines):
        trimmed = line.replace("\t", " ")
        if i != 0:
            trimmed = trimmed.lstrip(" ")
        if i != len(lines) - 1:
            trimmed = trimmed.rstrip(" ")
        if trimmed:
            if i != last_non_empty:
                trimmed += " "
            out += trimmed
    return html.unescape(out)


class _JsxLowering:
    def __init__(self, source: bytes):
        self.src = source

    def slice(self, start: int, end: int) -> str:
        return self.src[start:end].decode("utf-8")

    def emit(self, node: Node) -> str:
        if node.type in JSX_ELEMENTS:
            return self.element(node)
        if not node.children:
            return self.slice(node.start_byte, node.end_byte)
        parts = []
        pos = node.start_byte
        for child in node.children:
            parts.append(self.slice(pos, child.start_byte))
            parts.append(self.emit(child))
            pos = child.end_byte
        parts.append(self.slice(pos, node.end_byte))
        return "".join(parts)

    def element_type(self, name: Node | None) -> str:
        if name is None:
            return "React.Fragment"
        text = _text(name)
        if name.type == "identifier" and (text[:1].islower() or "-" in text):
            return json.dumps(text)
        if name.type == "jsx_namespace_name":
            return json.dumps(text)
        return text

    def expression_body(self, node: Node) -> Node | None:
        return next((c for c in node.named_children if c.type != "comment"), None)

    def attribute_value(self, value: Node | None) -> str:
        if value is None:
            return "true"
        if value.type == "string":
            return json.dumps(html.unescape(_string_value(value)))
        if value.type == "jsx_expression":
            body = self.expression_body(value)
            return self.emit(body) if body is not None else "undefined"
        return self.emit(value)

    def props(self, tag: Node) -> str:
        entries = []
        for attr in tag.children_by_field_name("attribute"):
            if attr.type == "jsx_expression":
                body = self.expression_body(attr)
                if body is not None:
                    entries.append(self.emit(body))
                continue
            parts = [c for c in attr.named_children if c.type != "comment"]
            key = _text(parts[0])
            if not _IDENTIFIER_RE.match(key):
                key = json.dumps(key)
            entries.append(f"{key}: {self.attribute_value(parts[1] if len(parts) > 1 else None)}")
        return "{ " + ", ".join(entries) + " }" if entries else "null"

    def children(self, node: Node) -> list[str]:
        # Text is read from the gaps between tags/expressions so surrounding spaces survive.
        out = []
        pos = None
        for child in node.children:
            if child.type in JSX_TEXT:
                continue
            if pos is not None:
                text = clean_jsx_text(self.slice(pos, child.start_byte))
                if text:
                    out.append(json.dumps(text))
            if child.type in JSX_ELEMENTS:
                out.append(self.element(child))
            elif child.type == "jsx_expression":
                body = self.expression_body(child)
                if body is not None:
                    out.append(self.emit(body))
            pos = child.end_byte
        return out

    def element(self, node: Node) -> str:
        if node.type == "jsx_self_closing_element":
            tag, kids = node, []
        else:
            tag, kids = node.child_by_field_name("open_tag"), self.children(node)
        args = [self.element_type(tag.child_by_field_name("name")), self.props(tag)] + kids
        return f"React.createElement({', '.join(args)})"


def emit_browser_code(source: str) -> str:
    """Lower JSX to React.createElement calls; the rest of the script passes through."""
    raw = source.encode("utf-8")
    try:
        root = Parser(JS_LANGUAGE).parse(raw).root_node
        if root.has_error:
            raise TransformError("Failed to transpile code: rewritten module no longer parses")
        lowering = _JsxLowering(raw)
        code = lowering.slice(0, root.start_byte) + lowering.emit(root) + lowering.slice(root.end_byte, len(raw))
    except TransformError:
        raise
    except Exception as e:
        raise TransformError(f"Failed to transpile code: {e}") from e

    if not code.strip():
        raise TransformError("Failed to transpile code: empty output")
    return code


def transpile(source: str) -> str:
    tree = parse_component(source)
    rewritten = rewrite_module(source, tree)
    code = emit_browser_code(rewritten)
    logger.debug(f"Transpiled {len(source)} chars of source into {len(code)} chars")
    return code
