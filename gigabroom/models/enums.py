from __future__ import annotations

from enum import Enum, IntEnum, IntFlag
from typing import Any


class Category(str, Enum):
    RUST_TARGET = "rust-target"
    NODE_MODULES = "node-modules"
    PYTHON_CACHE = "python-cache"
    PHP_VENDOR = "php-vendor"
    RUBY_GEMS = "ruby-gems"
    MAVEN_TARGET = "maven-target"
    GRADLE_BUILD = "gradle-build"
    GO_VENDOR = "go-vendor"
    C_CACHE = "c-cache"
    DOTNET_BUILD = "dotnet-build"
    SWIFT_BUILD = "swift-build"
    IDE_CACHE = "ide-cache"
    OS_JUNK = "os-junk"
    TEMP_FILE = "temp-file"
    PACKAGE_CACHE = "package-cache"
    BUILD_CACHE = "build-cache"

    @property
    def label(self) -> str:
        return _LABELS[self]

    @classmethod
    def parse(cls, value: str) -> Category:
        """Accept either a category id (``rust-target``) or a short alias (``rust``)."""
        key = value.strip().lower()
        alias = _ALIASES.get(key)
        if alias is not None:
            return alias
        return cls(key)


_LABELS: dict[Category, str] = {
    Category.RUST_TARGET: "Rust target",
    Category.NODE_MODULES: "Node modules",
    Category.PYTHON_CACHE: "Python cache",
    Category.PHP_VENDOR: "PHP vendor",
    Category.RUBY_GEMS: "Ruby gems",
    Category.MAVEN_TARGET: "Maven target",
    Category.GRADLE_BUILD: "Gradle build",
    Category.GO_VENDOR: "Go vendor",
    Category.C_CACHE: "C/C++ cache",
    Category.DOTNET_BUILD: ".NET build",
    Category.SWIFT_BUILD: "Swift build",
    Category.IDE_CACHE: "IDE cache",
    Category.OS_JUNK: "OS junk",
    Category.TEMP_FILE: "Temp/log files",
    Category.PACKAGE_CACHE: "Package cache",
    Category.BUILD_CACHE: "Build cache",
}

_ALIASES: dict[str, Category] = {
    "rust": Category.RUST_TARGET,
    "node": Category.NODE_MODULES,
    "python": Category.PYTHON_CACHE,
    "php": Category.PHP_VENDOR,
    "ruby": Category.RUBY_GEMS,
    "java-maven": Category.MAVEN_TARGET,
    "java-gradle": Category.GRADLE_BUILD,
    "go": Category.GO_VENDOR,
    "c": Category.C_CACHE,
    "dotnet": Category.DOTNET_BUILD,
    "swift": Category.SWIFT_BUILD,
    "ide": Category.IDE_CACHE,
    "temp": Category.TEMP_FILE,
    "build": Category.BUILD_CACHE,
}


class DangerLevel(str, Enum):
    SAFE = "safe"
    CAUTION = "caution"


# IntFlag enables bitwise distribution: a BOTH rule is added to both the
# file and dir buckets at compile time via `if apply_to & flag` in patterns.py,
# so the matching loop never branches on apply_to.
class ApplyTo(IntFlag):
    FILE = 1
    DIR = 2
    BOTH = FILE | DIR

    @classmethod
    def from_str(cls, value: Any) -> ApplyTo:
        return _APPLY_TO_FROM_STR.get(str(value), cls.BOTH)

    def to_str(self) -> str:
        return _APPLY_TO_TO_STR.get(self, "both")


_APPLY_TO_FROM_STR: dict[str, ApplyTo] = {
    "file": ApplyTo.FILE,
    "dir": ApplyTo.DIR,
    "both": ApplyTo.BOTH,
}

_APPLY_TO_TO_STR: dict[ApplyTo, str] = {v: k for k, v in _APPLY_TO_FROM_STR.items()}


class ExitStatus(IntEnum):
    SUCCESS = 0
    HARD_FAILURE = 1
    PARTIAL_FAILURE = 2
