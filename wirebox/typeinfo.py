"""
Type Information

This module turns Python annotations into the declared types the rest of
Wirebox compares. It performs:

- Canonicalisation of annotations (``List[T]``, ``Sequence[T]`` and
  ``list[T]`` are the same collection type)
- Assignability checks between declared types
- Capability (Protocol / abstract class) satisfaction checks
- Signature analysis of factories, methods and functions

Only ``list[T]`` and its read-only spellings are collection types. Every
collection is materialised as a ``list``.
"""

import collections.abc
import enum
import functools
import inspect
import types
import typing
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from .exceptions import DefinitionError

NoneType = type(None)

_COLLECTION_ORIGINS = (
    list,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Iterable,
    collections.abc.Collection,
)

_UNION_ORIGINS: Tuple[Any, ...] = (Union,)
if hasattr(types, 'UnionType'):
    _UNION_ORIGINS += (types.UnionType,)

# Attributes every Protocol class carries that are not part of its contract.
_PROTOCOL_EXCLUDED = frozenset({
    '__abstractmethods__', '__annotations__', '__annotate__', '__annotate_func__',
    '__annotations_cache__', '__dict__', '__doc__', '__init__', '__module__',
    '__new__', '__slots__', '__subclasshook__', '__weakref__', '__class_getitem__',
    '__parameters__', '__orig_bases__', '__orig_class__', '__qualname__',
    '__firstlineno__', '__static_attributes__', '__type_params__',
    '__protocol_attrs__', '__non_callable_proto_members__',
    '__callable_proto_members_only__', '_is_protocol', '_is_runtime_protocol',
    '__init_subclass__', '_abc_impl',
})


@dataclass(frozen=True)
class Label:
    """Marker asking for a labelled definition.

    Used inside ``Annotated`` on a parameter::

        class Mailer:
            def __init__(self, transport: Annotated[Transport, Label("smtp")]):
                ...
    """
    name: str

    def __str__(self) -> str:
        return self.name


class ParameterKind(enum.Enum):
    """How a parameter receives its value at call time"""
    POSITIONAL = "POSITIONAL"
    VARIADIC = "VARIADIC"
    KEYWORD = "KEYWORD"


@dataclass(frozen=True)
class ParameterInfo:
    """One analysed parameter of a callable"""
    name: str
    index: int
    annotation: Any  # Canonical declared type
    kind: ParameterKind
    default: Any = inspect.Parameter.empty
    label: Optional[str] = None

    @property
    def has_default(self) -> bool:
        return self.default is not inspect.Parameter.empty


def canonical(tp: Any) -> Any:
    """Normalise an annotation to the form used for comparisons and lookups.

    Args:
        tp: Any annotation

    Returns:
        The canonical declared type
    """
    if tp is None:
        return NoneType
    if tp is list:
        return list[Any]

    origin = typing.get_origin(tp)
    if origin is None:
        return tp

    args = typing.get_args(tp)
    if origin is typing.Annotated:
        return canonical(args[0])
    if origin in _COLLECTION_ORIGINS:
        return list[canonical(args[0]) if args else Any]
    if origin in _UNION_ORIGINS:
        members = tuple(canonical(a) for a in args)
        return Union[members]
    if isinstance(origin, type) and args:
        try:
            rebuilt = types.GenericAlias(
                origin, tuple(a if a is Ellipsis else canonical(a) for a in args)
            )
            hash(rebuilt)
            return rebuilt
        except TypeError:
            return tp
    return tp


def collection_of(element: Any) -> Any:
    """Return the collection type holding ``element`` values."""
    return list[canonical(element)]


def element_type(tp: Any) -> Optional[Any]:
    """Return the element type of a collection type, ``None`` otherwise."""
    tp = canonical(tp)
    if typing.get_origin(tp) is list:
        return typing.get_args(tp)[0]
    return None


def is_collection(tp: Any) -> bool:
    return element_type(tp) is not None


def label_of(tp: Any) -> Optional[str]:
    """Return the name of the first ``Label`` marker in an ``Annotated`` type."""
    if typing.get_origin(tp) is not typing.Annotated:
        return None
    for meta in tp.__metadata__:
        if isinstance(meta, Label):
            return meta.name
    return None


def signature(tp: Any) -> str:
    """Readable name of a declared type, used in messages."""
    tp = canonical(tp)
    if tp is Any:
        return 'Any'
    if isinstance(tp, type) and typing.get_origin(tp) is None:
        if tp.__module__ == 'builtins':
            return tp.__qualname__
        return f"{tp.__module__}.{tp.__qualname__}"
    elem = element_type(tp)
    if elem is not None:
        return f"list[{signature(elem)}]"
    return repr(tp).replace('typing.', '')


def is_protocol(tp: Any) -> bool:
    return (
        isinstance(tp, type)
        and tp is not typing.Protocol
        and bool(getattr(tp, '_is_protocol', False))
    )


def is_capability(tp: Any) -> bool:
    """Check whether ``tp`` is a capability type (Protocol or abstract class)."""
    tp = canonical(tp)
    if not isinstance(tp, type):
        return False
    return is_protocol(tp) or inspect.isabstract(tp)


def protocol_members(proto: type) -> frozenset:
    """Names a class must provide to satisfy ``proto``."""
    attrs = getattr(proto, '__protocol_attrs__', None)
    if attrs is not None:
        return frozenset(attrs)

    members = set()
    for base in proto.__mro__[:-1]:
        if base.__name__ in ('Protocol', 'Generic'):
            continue
        names = list(base.__dict__.keys())
        names += list(base.__dict__.get('__annotations__', {}).keys())
        for name in names:
            if name not in _PROTOCOL_EXCLUDED and not name.startswith('_abc_'):
                members.add(name)
    return frozenset(members)


def _class_annotations(cls: type) -> set:
    names = set()
    for base in cls.__mro__:
        names.update(base.__dict__.get('__annotations__', {}).keys())
    return names


@functools.lru_cache(maxsize=None)
def implements(concrete: Any, capability: Any) -> bool:
    """Check whether ``concrete`` satisfies ``capability``.

    Nominal subclassing is checked first. For Protocols, the concrete
    class must also provide every protocol member, either as a class
    attribute or as an annotated instance attribute. Results are memoised
    per pair of types.

    Args:
        concrete: The concrete (produced) type
        capability: A Protocol or abstract class

    Returns:
        True when ``concrete`` can be used where ``capability`` is expected
    """
    if not isinstance(concrete, type) or not isinstance(capability, type):
        return False
    if capability in concrete.__mro__:
        return True
    if is_protocol(capability):
        annotated = _class_annotations(concrete)
        return all(
            hasattr(concrete, name) or name in annotated
            for name in protocol_members(capability)
        )
    try:
        return issubclass(concrete, capability)
    except TypeError:
        return False


def is_assignable(src: Any, dst: Any) -> bool:
    """Check whether a value of declared type ``src`` fits a ``dst`` slot.

    Args:
        src: Declared type of the argument
        dst: Declared type of the parameter

    Returns:
        True when the argument may fill the parameter
    """
    src, dst = canonical(src), canonical(dst)
    if dst is Any or dst is object or src is Any:
        return True
    if src == dst:
        return True

    if typing.get_origin(dst) in _UNION_ORIGINS:
        return any(is_assignable(src, member) for member in typing.get_args(dst))
    if typing.get_origin(src) in _UNION_ORIGINS:
        return all(is_assignable(member, dst) for member in typing.get_args(src))

    src_elem, dst_elem = element_type(src), element_type(dst)
    if dst_elem is not None:
        return src_elem is not None and is_assignable(src_elem, dst_elem)
    if src_elem is not None:
        return False

    if isinstance(src, type) and isinstance(dst, type):
        if is_protocol(dst):
            return implements(src, dst)
        try:
            return issubclass(src, dst)
        except TypeError:
            return False

    src_origin, dst_origin = typing.get_origin(src), typing.get_origin(dst)
    if isinstance(src_origin, type) and isinstance(dst, type) and typing.get_origin(dst) is None:
        return issubclass(src_origin, dst)
    if isinstance(src_origin, type) and isinstance(dst_origin, type):
        return issubclass(src_origin, dst_origin) and typing.get_args(src) == typing.get_args(dst)
    return False


def callable_name(fn: Any) -> str:
    """Qualified name of a callable, used for definitions and messages."""
    name = getattr(fn, '__qualname__', None) or getattr(fn, '__name__', None)
    if name is None:
        return type(fn).__qualname__
    module = getattr(fn, '__module__', None)
    return f"{module}.{name}" if module else name


def inspect_callable(fn: Callable) -> Tuple[List[ParameterInfo], Any]:
    """Analyse a callable's parameters and produced type.

    For classes, the parameters of ``__init__`` (without ``self``) are
    analysed and the produced type is the class itself. For functions,
    the produced type is the return annotation, or ``inspect.Parameter.empty``
    when there is none.

    Args:
        fn: A class or a function

    Returns:
        Tuple of (parameters in declaration order, produced type)

    Raises:
        DefinitionError: When the signature cannot be inspected or a
            forward reference cannot be resolved
    """
    name = callable_name(fn)
    try:
        sig = inspect.signature(fn)
    except (ValueError, TypeError) as e:
        raise DefinitionError(
            f"Cannot inspect signature of {name}: {e}. "
            f"This may occur with built-in types or C extension callables."
        ) from e

    hint_target = fn.__init__ if inspect.isclass(fn) else fn
    hints = _resolve_type_hints(hint_target)

    parameters: List[ParameterInfo] = []
    for param_name, param in sig.parameters.items():
        if param.kind == inspect.Parameter.VAR_KEYWORD:
            continue

        raw = hints.get(param_name, param.annotation)
        if raw is inspect.Parameter.empty:
            raw = Any
        elif isinstance(raw, str):
            raw = _resolve_string_annotation(fn, param_name, raw)

        label = label_of(raw)
        annotation = canonical(raw)
        if param.kind == inspect.Parameter.VAR_POSITIONAL:
            kind = ParameterKind.VARIADIC
            annotation = collection_of(annotation)
        elif param.kind == inspect.Parameter.KEYWORD_ONLY:
            kind = ParameterKind.KEYWORD
        else:
            kind = ParameterKind.POSITIONAL

        parameters.append(ParameterInfo(
            name=param_name,
            index=len(parameters),
            annotation=annotation,
            kind=kind,
            default=param.default,
            label=label,
        ))

    if inspect.isclass(fn):
        return parameters, fn

    produced = hints.get('return', sig.return_annotation)
    if isinstance(produced, str):
        produced = _resolve_string_annotation(fn, 'return', produced)
    if produced is not inspect.Parameter.empty:
        produced = canonical(produced)
    return parameters, produced


def _resolve_type_hints(target: Any) -> Dict[str, Any]:
    """Resolve type hints, returning an empty dict when resolution fails.

    Failures fall back to per-parameter string resolution.
    """
    try:
        return typing.get_type_hints(target, include_extras=True)
    except NameError:
        # Type not found in scope - common with local classes
        return {}
    except RecursionError:
        return {}
    except TypeError:
        # PEP 604 | used with a type that doesn't support it, or a
        # callable typing cannot introspect
        return {}


def _resolve_string_annotation(fn: Any, param_name: str, annotation: str) -> Any:
    """Evaluate a string annotation in the callable's module namespace.

    Raises:
        DefinitionError: When the annotation cannot be resolved
    """
    name = callable_name(fn)
    module = inspect.getmodule(fn)
    if module is None:
        raise DefinitionError(
            f"Cannot resolve forward reference '{annotation}' for parameter "
            f"'{param_name}' of {name}: the callable's module could not be determined."
        )

    namespace: Dict[str, Any] = dict(vars(typing))
    namespace.update(vars(module))
    if inspect.isclass(fn):
        namespace.update(fn.__dict__)

    try:
        return eval(annotation, namespace)
    except NameError as e:
        raise DefinitionError(
            f"Cannot resolve forward reference '{annotation}' for parameter "
            f"'{param_name}' of {name}: {e}. "
            f"Hint: define '{annotation}' at module level before building the container."
        ) from e
    except Exception as e:
        raise DefinitionError(
            f"Invalid annotation '{annotation}' for parameter '{param_name}' of {name}: {e}"
        ) from e
