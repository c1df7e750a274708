"""
Test Fixtures

Common test classes used across test modules
"""

import abc
from typing import Annotated, List, Protocol

from wirebox import Label


class Database:
    """Test database class"""

    def __init__(self, url: str = "sqlite://"):
        self.url = url


class CacheService:
    """Test cache service"""

    def __init__(self):
        self.cache = {}


class UserRepository:
    """Test repository with dependencies"""

    def __init__(self, db: Database, cache: CacheService):
        self.db = db
        self.cache = cache


class CounterService:
    """Service counting its own constructions"""
    instances = 0

    def __init__(self):
        CounterService.instances += 1
        self.counter = 0

    def increment(self):
        self.counter += 1
        return self.counter


class Foo:
    def __init__(self, s: str):
        self.s = s


class Bar:
    def __init__(self, foo: Foo):
        self.foo = foo


# Cycle broken by method injection

class ServiceA:
    def __init__(self, b: "ServiceB"):
        self.b = b


class ServiceB:
    def __init__(self):
        self.a = None

    def set_a(self, a: ServiceA) -> None:
        self.a = a


# Constructor cycle

class CyclicLeft:
    def __init__(self, right: "CyclicRight"):
        self.right = right


class CyclicRight:
    def __init__(self, left: CyclicLeft):
        self.left = left


class SelfDependent:
    def __init__(self, other: "SelfDependent"):
        self.other = other


# Method-injected loop, meant to be registered as non-shared

class PeerLeft:
    def __init__(self):
        self.right = None

    def set_right(self, right: "PeerRight") -> None:
        self.right = right


class PeerRight:
    def __init__(self):
        self.left = None

    def set_left(self, left: PeerLeft) -> None:
        self.left = left


# Capabilities

class Storage(Protocol):
    def save(self, key: str, value: str) -> None:
        ...

    def load(self, key: str) -> str:
        ...


class DiskStorage:
    """Satisfies Storage structurally"""

    def __init__(self):
        self.data = {}

    def save(self, key: str, value: str) -> None:
        self.data[key] = value

    def load(self, key: str) -> str:
        return self.data[key]


class MemoryStorage:
    """Satisfies Storage structurally"""

    def __init__(self):
        self.data = {}

    def save(self, key: str, value: str) -> None:
        self.data[key] = value

    def load(self, key: str) -> str:
        return self.data[key]


class ReadOnlyStorage:
    """Misses Storage.save"""

    def load(self, key: str) -> str:
        return key


class StorageUser:
    def __init__(self, storage: Storage):
        self.storage = storage


class StorageHub:
    def __init__(self, storages: List[Storage]):
        self.storages = storages


class Notifier(abc.ABC):
    @abc.abstractmethod
    def send(self, message: str) -> None:
        ...


class EmailNotifier(Notifier):
    def __init__(self):
        self.sent = []

    def send(self, message: str) -> None:
        self.sent.append(message)


class AlertService:
    def __init__(self, notifier: Notifier):
        self.notifier = notifier


# Collections

class Plugin:
    def __init__(self, name: str):
        self.name = name


class PluginHost:
    def __init__(self, plugins: List[Plugin]):
        self.plugins = plugins


class VariadicHost:
    def __init__(self, *plugins: Plugin):
        self.plugins = list(plugins)


def make_plugins() -> List[Plugin]:
    return [Plugin("bundled")]


# Labels and defaults

class LabelledConsumer:
    def __init__(self, primary: Annotated[Database, Label("primary")]):
        self.primary = primary


class Reporter:
    def __init__(self, db: Database, retries: int = 3, *, verbose: bool = False):
        self.db = db
        self.retries = retries
        self.verbose = verbose


# Failures

class Exploding:
    def __init__(self):
        raise ValueError("boom")


class BrokenSetter:
    def __init__(self):
        self.calls = 0

    def configure(self, cache: CacheService) -> None:
        self.calls += 1
        raise RuntimeError("cannot configure")


def migrate(db: Database) -> str:
    return f"migrated {db.url}"


def new_cache() -> CacheService:
    return CacheService()
