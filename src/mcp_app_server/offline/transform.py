"""Named, parameterized edits of a persisted configuration document.

A subsystem may have been renamed or restructured between server generations
(e.g. ``messaging`` with HornetQ vs ``messaging-activemq``). An edit is
therefore registered once per schema generation:

    @edit_script("add-queue", "messagingActivemq", params=("name", "entriesString"))
    def add_queue_activemq(subsystem, params) -> bool:
        ...

and a transform lists the subtree selector for every generation it knows:

    transform = (XmlTransform.of("add-queue")
                 .subtree("messagingHornetq", Subtree.subsystem("messaging"))
                 .subtree("messagingActivemq", Subtree.subsystem("messaging-activemq"))
                 .parameter("name", "Q1")
                 .build())

Applying it runs each generation's script on every matching subtree. A
generation whose subtree is absent from the document is skipped. Scripts
return True when they changed their subtree.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from lxml import etree

logger = logging.getLogger(__name__)

SUBSYSTEM_NS_PREFIX = "urn:jboss:domain:"

EditScript = Callable[[etree._Element, dict[str, Any]], bool]


class TransformError(Exception):
    """Fatal offline configuration error (bad document, script or parameters)."""


@dataclass(frozen=True)
class RegisteredScript:
    func: EditScript
    params: tuple[str, ...] = ()


# edit name -> generation tag -> script
EDIT_SCRIPTS: dict[str, dict[str, RegisteredScript]] = {}


def edit_script(name: str, generation: str, params: tuple[str, ...] = ()) -> Callable:
    """Register an edit script for one schema generation.

    Args:
        name: Edit name shared by all generations
        generation: Schema generation tag, matched against transform subtrees
        params: Parameters the script requires
    """
    def decorator(func: EditScript) -> EditScript:
        scripts = EDIT_SCRIPTS.setdefault(name, {})
        if generation in scripts:
            raise ValueError(f"Edit script {name}/{generation} registered twice")
        scripts[generation] = RegisteredScript(func, tuple(params))
        return func

    return decorator


def subsystem_name(element: etree._Element) -> Optional[str]:
    """Name of a ``<subsystem xmlns="urn:jboss:domain:NAME:X.Y">`` element."""
    qname = etree.QName(element)
    if qname.localname != "subsystem" or not qname.namespace:
        return None
    if not qname.namespace.startswith(SUBSYSTEM_NS_PREFIX):
        return None
    name, _, _version = qname.namespace[len(SUBSYSTEM_NS_PREFIX):].rpartition(":")
    return name or None


@dataclass(frozen=True)
class Subtree:
    """Selects the document elements an edit script operates on."""
    kind: str
    name: Optional[str] = None

    @classmethod
    def root(cls) -> "Subtree":
        return cls("root")

    @classmethod
    def subsystem(cls, name: str) -> "Subtree":
        if not name:
            raise ValueError("Subsystem name must be specified")
        return cls("subsystem", name)

    @classmethod
    def profile(cls, name: Optional[str] = None) -> "Subtree":
        """Profiles of a domain.xml, optionally a single one by name."""
        return cls("profile", name)

    def select(self, root: etree._Element) -> list[etree._Element]:
        if self.kind == "root":
            return [root]
        if self.kind == "subsystem":
            return [el for el in root.iter("{*}subsystem") if subsystem_name(el) == self.name]
        if self.kind == "profile":
            return [
                el for el in root.iter("{*}profile")
                if self.name is None or el.get("name") == self.name
            ]
        raise ValueError(f"Unknown subtree kind: {self.kind}")

    def __str__(self) -> str:
        return f"{self.kind}:{self.name}" if self.name else self.kind


@dataclass(frozen=True)
class XmlTransform:
    """An edit name, its per-generation subtrees and its parameters."""
    name: str
    subtrees: tuple[tuple[str, Subtree], ...]
    parameters: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def of(cls, name: str) -> "XmlTransformBuilder":
        return XmlTransformBuilder(name)

    def apply(self, root: etree._Element) -> int:
        """Run the edit on every matching subtree.

        Returns:
            Number of subtrees changed (0 means the document was left untouched)

        Raises:
            TransformError: unknown edit, missing generation script or parameter
        """
        scripts = EDIT_SCRIPTS.get(self.name)
        if not scripts:
            raise TransformError(f"No edit script named '{self.name}'")

        # Resolve everything before touching the document
        plan = []
        for generation, subtree in self.subtrees:
            script = scripts.get(generation)
            if script is None:
                raise TransformError(
                    f"Edit '{self.name}' has no script for schema generation '{generation}'"
                )
            missing = [p for p in script.params if p not in self.parameters]
            if missing:
                raise TransformError(
                    f"Edit '{self.name}/{generation}' is missing parameters: {', '.join(missing)}"
                )
            plan.append((generation, subtree, script))

        edited = 0
        for generation, subtree, script in plan:
            elements = subtree.select(root)
            if not elements:
                logger.debug(f"{self.name}: no {subtree} in document, skipping {generation}")
                continue
            for element in elements:
                logger.debug(f"{self.name}: applying {generation} edit to {subtree}")
                if script.func(element, dict(self.parameters)):
                    edited += 1

        return edited


class XmlTransformBuilder:
    """Fluent builder for XmlTransform."""

    def __init__(self, name: str):
        if not name:
            raise ValueError("Transform name must be specified")
        self._name = name
        self._subtrees: list[tuple[str, Subtree]] = []
        self._parameters: dict[str, Any] = {}

    def subtree(self, generation: str, subtree: Subtree) -> "XmlTransformBuilder":
        if any(existing == generation for existing, _ in self._subtrees):
            raise ValueError(f"Subtree for generation '{generation}' already defined")
        self._subtrees.append((generation, subtree))
        return self

    def parameter(self, name: str, value: Any) -> "XmlTransformBuilder":
        self._parameters[name] = value
        return self

    def parameters(self, **values: Any) -> "XmlTransformBuilder":
        self._parameters.update(values)
        return self

    def build(self) -> XmlTransform:
        if not self._subtrees:
            raise ValueError(f"Transform '{self._name}' needs at least one subtree")
        return XmlTransform(self._name, tuple(self._subtrees), dict(self._parameters))


# --- Helpers for edit scripts ---

INDENT = "    "


def namespace_of(element: etree._Element) -> Optional[str]:
    return etree.QName(element).namespace


def qualified(element: etree._Element, tag: str) -> str:
    """Tag name in the namespace of ``element``."""
    ns = namespace_of(element)
    return f"{{{ns}}}{tag}" if ns else tag


def children_named(parent: etree._Element, tag: str) -> list[etree._Element]:
    return parent.findall(qualified(parent, tag))


def insert_element(
    parent: etree._Element,
    tag: str,
    attrib: Optional[dict[str, str]] = None,
    after: tuple[str, ...] = (),
    before: tuple[str, ...] = (),
) -> etree._Element:
    """Insert a child in the parent's namespace, keeping indentation.

    The child goes after the last sibling named in ``after``; failing that,
    before the first sibling named in ``before``; failing that, at the end.
    """
    children = [c for c in parent if isinstance(c.tag, str)]
    local_names = [etree.QName(c).localname for c in children]
    # SubElement inherits the parent's namespace map without redeclaring it
    element = etree.SubElement(parent, qualified(parent, tag), attrib or {})

    position = len(children)
    after_hits = [i for i, name in enumerate(local_names) if name in after]
    before_hits = [i for i, name in enumerate(local_names) if name in before]
    if after_hits:
        position = after_hits[-1] + 1
    elif before_hits:
        position = before_hits[0]

    if not children:
        depth = sum(1 for _ in parent.iterancestors())
        parent.text = "\n" + INDENT * (depth + 1)
        element.tail = "\n" + INDENT * depth
    elif position == len(children):
        last = children[-1]
        element.tail = last.tail
        last.tail = parent.text
    else:
        element.tail = parent.text
        children[position].addprevious(element)
    return element


def remove_element(element: etree._Element) -> None:
    """Remove an element, keeping the closing indentation of its parent."""
    parent = element.getparent()
    previous = element.getprevious()
    if element.getnext() is None:
        if previous is not None:
            previous.tail = element.tail
        elif not (parent.text or "").strip():
            parent.text = None
    # lxml drops the tail together with the element
    parent.remove(element)
