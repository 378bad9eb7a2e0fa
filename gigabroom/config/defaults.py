from __future__ import annotations

from gigabroom.config.schema import AppConfig, Rule
from gigabroom.models.enums import ApplyTo, Category, DangerLevel

_GRADLE_MARKERS = ("build.gradle", "build.gradle.kts", "settings.gradle", "settings.gradle.kts")

# Project roots that make a generic "build"/"dist"/"out"/".cache" directory
# an artifact rather than something the user created by hand.
_PROJECT_MARKERS = (
    "package.json",
    "pyproject.toml",
    "setup.py",
    "setup.cfg",
    "CMakeLists.txt",
    "Makefile",
    "meson.build",
    "tsconfig.json",
    "build.gradle",
)


def default_rules() -> list[Rule]:
    """Built-in rule table, highest priority first.

    Specific ecosystems precede the generic build-cache rule so that
    ``target`` next to ``Cargo.toml`` is Rust, not Maven or generic build.
    """
    return [
        Rule(
            "rust-target",
            Category.RUST_TARGET,
            ("**/target",),
            markers=("Cargo.toml",),
            description="Cargo build output",
        ),
        Rule(
            "maven-target",
            Category.MAVEN_TARGET,
            ("**/target",),
            markers=("pom.xml",),
            description="Maven build output",
        ),
        Rule(
            "node-modules",
            Category.NODE_MODULES,
            ("**/node_modules",),
            description="npm / yarn / pnpm dependencies",
        ),
        Rule(
            "python-cache",
            Category.PYTHON_CACHE,
            ("**/__pycache__", "**/.pytest_cache", "**/.mypy_cache", "**/.ruff_cache", "**/.tox", "**/.nox"),
            description="Python bytecode and tool caches",
        ),
        Rule(
            "python-bytecode",
            Category.PYTHON_CACHE,
            ("**/*.{pyc,pyo}",),
            apply_to=ApplyTo.FILE,
            description="Stray compiled Python files",
        ),
        Rule(
            "python-venv",
            Category.PYTHON_CACHE,
            ("**/venv", "**/.venv"),
            inner_markers=("pyvenv.cfg",),
            description="Python virtual environments",
        ),
        Rule(
            "php-vendor",
            Category.PHP_VENDOR,
            ("**/vendor",),
            markers=("composer.json",),
            description="Composer dependencies",
        ),
        Rule(
            "go-vendor",
            Category.GO_VENDOR,
            ("**/vendor",),
            markers=("go.mod", "go.sum"),
            description="Vendored Go modules",
        ),
        Rule(
            "ruby-gems",
            Category.RUBY_GEMS,
            ("**/vendor", "**/.bundle"),
            markers=("Gemfile", "Gemfile.lock"),
            description="Bundler installed gems",
        ),
        Rule(
            "gradle-build",
            Category.GRADLE_BUILD,
            ("**/build", "**/.gradle"),
            markers=_GRADLE_MARKERS,
            description="Gradle build output and project cache",
        ),
        Rule(
            "cmake-files",
            Category.C_CACHE,
            ("**/CMakeFiles",),
            description="CMake intermediate files",
        ),
        Rule(
            "c-objects",
            Category.C_CACHE,
            ("**/*.o", "**/*.a", "**/a.out"),
            apply_to=ApplyTo.FILE,
            description="Object files and static archives",
        ),
        Rule(
            "dotnet-build",
            Category.DOTNET_BUILD,
            ("**/bin", "**/obj"),
            markers=("*.csproj", "*.vbproj", "*.fsproj"),
            siblings=("bin", "obj"),
            description=".NET bin/obj output",
        ),
        Rule(
            "dotnet-packages",
            Category.DOTNET_BUILD,
            ("**/packages",),
            markers=("*.sln",),
            marker_depth=2,
            description="NuGet solution packages",
        ),
        Rule(
            "swift-build",
            Category.SWIFT_BUILD,
            ("**/.build",),
            markers=("Package.swift",),
            description="SwiftPM build output",
        ),
        Rule(
            "xcode-derived",
            Category.SWIFT_BUILD,
            ("**/DerivedData",),
            description="Xcode derived data",
        ),
        Rule(
            "ide-cache",
            Category.IDE_CACHE,
            ("**/.idea", "**/.vscode", "**/.vs"),
            danger=DangerLevel.CAUTION,
            description="Editor state; may hold user settings",
        ),
        Rule(
            "os-junk",
            Category.OS_JUNK,
            ("**/.DS_Store", "**/Thumbs.db", "**/desktop.ini", "**/.localized"),
            apply_to=ApplyTo.FILE,
            description="Operating system metadata files",
        ),
        Rule(
            "package-cache",
            Category.PACKAGE_CACHE,
            ("**/.npm/_cacache", "**/.cache/pip", "**/.cache/yarn", "**/.m2/repository"),
            danger=DangerLevel.CAUTION,
            description="Package manager download caches",
        ),
        Rule(
            "temp-dirs",
            Category.TEMP_FILE,
            ("**/.sass-cache", "**/.parcel-cache"),
            description="Bundler and preprocessor caches",
        ),
        Rule(
            "project-cache",
            Category.TEMP_FILE,
            ("**/.cache",),
            markers=_PROJECT_MARKERS,
            description="Per-project tool cache",
        ),
        Rule(
            "temp-files",
            Category.TEMP_FILE,
            ("**/*.log", "**/*.tmp", "**/*.temp"),
            apply_to=ApplyTo.FILE,
            description="Log and temporary files",
        ),
        Rule(
            "build-cache",
            Category.BUILD_CACHE,
            ("**/build", "**/dist", "**/out"),
            markers=_PROJECT_MARKERS,
            description="Generic build output next to a project file",
        ),
    ]


def default_config() -> AppConfig:
    return AppConfig(rules=default_rules())
