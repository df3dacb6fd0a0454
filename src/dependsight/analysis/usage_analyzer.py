"""Usage analyzer: finds where declared dependencies are imported or required.

Every candidate source file is parsed with tree-sitter and the syntax tree is
walked for two node kinds only:

- ``import_statement``: ES module imports, classified by their bindings;
- ``call_expression``: ``require('pkg')`` calls with a plain string argument.

Each site whose specifier resolves to a declared dependency becomes one
``UsageRecord``. A file that cannot be read or parsed is logged and skipped.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar

import tree_sitter_typescript
from tree_sitter import Language, Node, Parser

from dependsight.core.models import Dependency, ImportKind, UsageRecord
from dependsight.errors import SourceParseError
from dependsight.scanners.files import FileEnumerator
from dependsight.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ImportSite:
    """An import declaration or require call found in one file."""

    specifier: str
    import_kind: ImportKind
    imported_members: list[str] | None
    line_number: int


@dataclass
class UsageReport:
    """Result of analyzing a project's source files."""

    usages: list[UsageRecord] = field(default_factory=list)
    files_analyzed: int = 0
    warnings: list[str] = field(default_factory=list)

    @property
    def files_with_usage(self) -> int:
        """Number of files with at least one usage."""
        return len({u.file for u in self.usages})


def resolve_package_name(specifier: str) -> str:
    """Resolve the package a module specifier belongs to.

    ``@scope/pkg/sub/path`` resolves to ``@scope/pkg``; ``pkg/sub/path``
    resolves to ``pkg``.

    Args:
        specifier: Module specifier from an import or require.

    Returns:
        Package name.
    """
    parts = specifier.split("/")
    if specifier.startswith("@"):
        return "/".join(parts[:2])
    return parts[0]


_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}


def _unescape(sequence: str) -> str:
    """Decode one JavaScript escape sequence such as ``\\n`` or ``\\u0061``."""
    body = sequence[1:]
    if body.startswith("u{"):
        return chr(int(body[2:-1], 16))
    if body[:1] in ("u", "x") and len(body) > 1:
        return chr(int(body[1:], 16))
    if body[:1] in ("\r", "\n", "\u2028", "\u2029"):
        # Line continuation
        return ""
    return _SIMPLE_ESCAPES.get(body, body)


def _string_value(node: Node) -> str:
    """Return the value of a string literal node, escapes decoded."""
    parts: list[str] = []
    for child in node.named_children:
        text = child.text.decode("utf-8")
        if child.type == "escape_sequence":
            parts.append(_unescape(text))
        else:
            parts.append(text)
    return "".join(parts)


def _first_argument(arguments: Node) -> Node | None:
    for child in arguments.named_children:
        if child.type != "comment":
            return child
    return None


def _first_error_line(root: Node) -> int:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
        if node.has_error:
            stack.extend(reversed(node.children))
    return root.start_point[0] + 1


class JavaScriptImportExtractor:
    """Extracts import sites from JavaScript and TypeScript sources."""

    typescript_extensions: ClassVar[tuple[str, ...]] = (".ts", ".mts", ".cts")
    """Extensions parsed with the plain TypeScript grammar; all others use TSX."""

    def __init__(self) -> None:
        """Initialize the TypeScript and TSX parsers."""
        self._typescript = Parser(Language(tree_sitter_typescript.language_typescript()))
        self._tsx = Parser(Language(tree_sitter_typescript.language_tsx()))

    def parser_for(self, file_path: str) -> Parser:
        """Pick the grammar for a file.

        The TSX grammar accepts JSX, type annotations, decorators and class
        fields, so it also covers plain JavaScript. ``.ts`` files keep the
        TypeScript grammar because ``<T>value`` casts are not valid TSX.
        """
        if file_path.endswith(self.typescript_extensions):
            return self._typescript
        return self._tsx

    def extract(self, file_path: str, content: str) -> list[ImportSite]:
        """Parse a file and return its import sites in source order.

        Args:
            file_path: Path used to choose the grammar and in messages.
            content: File contents.

        Returns:
            Import sites, one per import statement or require call.

        Raises:
            SourceParseError: If the file has syntax errors.
        """
        tree = self.parser_for(file_path).parse(content.encode("utf-8"))
        root = tree.root_node
        if root.has_error:
            raise SourceParseError(
                file_path, f"syntax error at line {_first_error_line(root)}"
            )

        sites: list[ImportSite] = []

        # Iterative pre-order walk keeps occurrence order without recursion limits
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "import_statement":
                site = self._import_site(node)
                if site:
                    sites.append(site)
            elif node.type == "call_expression":
                site = self._require_site(node)
                if site:
                    sites.append(site)
            stack.extend(reversed(node.children))

        return sites

    def _import_site(self, node: Node) -> ImportSite | None:
        """Build a site from an ``import_statement`` node."""
        source = node.child_by_field_name("source")
        if source is None or source.type != "string":
            # import x = require('y') has no top-level source
            return None

        has_default = False
        has_namespace = False
        members: list[str] = []
        binding_count = 0

        for clause in node.named_children:
            if clause.type != "import_clause":
                continue
            for binding in clause.named_children:
                if binding.type == "identifier":
                    has_default = True
                    binding_count += 1
                elif binding.type == "namespace_import":
                    has_namespace = True
                    binding_count += 1
                elif binding.type == "named_imports":
                    for specifier in binding.named_children:
                        if specifier.type != "import_specifier":
                            continue
                        binding_count += 1
                        name = specifier.child_by_field_name("name")
                        if name is None:
                            continue
                        if name.type == "string":
                            members.append(_string_value(name))
                        else:
                            members.append(name.text.decode("utf-8"))

        if binding_count == 0:
            kind = ImportKind.SIDE_EFFECT
            imported: list[str] | None = None
        elif has_default:
            kind = ImportKind.DEFAULT
            imported = members
        elif has_namespace:
            kind = ImportKind.NAMESPACE
            imported = members
        else:
            kind = ImportKind.NAMED
            imported = members

        return ImportSite(
            specifier=_string_value(source),
            import_kind=kind,
            imported_members=imported,
            line_number=node.start_point[0] + 1,
        )

    def _require_site(self, node: Node) -> ImportSite | None:
        """Build a site from a ``require('pkg')`` call, if it is one."""
        callee = node.child_by_field_name("function")
        if callee is None or callee.type != "identifier" or callee.text != b"require":
            return None

        arguments = node.child_by_field_name("arguments")
        if arguments is None:
            return None
        first = _first_argument(arguments)
        if first is None or first.type != "string":
            return None

        return ImportSite(
            specifier=_string_value(first),
            import_kind=ImportKind.SIDE_EFFECT,
            imported_members=None,
            line_number=node.start_point[0] + 1,
        )


class UsageAnalyzer:
    """Finds usages of declared dependencies across a project."""

    def __init__(
        self,
        file_enumerator: FileEnumerator | None = None,
        extractor: JavaScriptImportExtractor | None = None,
    ) -> None:
        """Initialize the usage analyzer.

        Args:
            file_enumerator: Optional pre-configured file enumerator.
            extractor: Optional pre-built import extractor.
        """
        self._enumerator = file_enumerator or FileEnumerator()
        self._extractor = extractor or JavaScriptImportExtractor()

    def analyze(
        self,
        project_root: str | Path,
        dependencies: list[Dependency],
    ) -> UsageReport:
        """Analyze every source file under a project root.

        Args:
            project_root: Project directory.
            dependencies: Declared dependencies; usages of anything else are
                ignored.

        Returns:
            Usage report; usages are ordered by file, then by occurrence.
        """
        root = Path(project_root)
        by_name = {dep.name: dep for dep in dependencies}
        report = UsageReport()

        files = self._enumerator.find_files(root)
        report.files_analyzed = len(files)

        for relative_path in files:
            try:
                content = (root / relative_path).read_text(encoding="utf-8")
                sites = self._extractor.extract(relative_path, content)
            except (OSError, UnicodeDecodeError) as e:
                message = f"Could not read {relative_path}: {e}"
                logger.warning(message)
                report.warnings.append(message)
                continue
            except SourceParseError as e:
                logger.warning(e.message)
                report.warnings.append(e.message)
                continue

            for site in sites:
                dependency = by_name.get(resolve_package_name(site.specifier))
                if dependency is None:
                    continue
                report.usages.append(
                    UsageRecord(
                        dependency=dependency,
                        file=relative_path,
                        import_kind=site.import_kind,
                        imported_members=site.imported_members,
                    )
                )

        logger.debug(
            "Found %d usages in %d of %d files",
            len(report.usages),
            report.files_with_usage,
            report.files_analyzed,
        )
        return report


def analyze_usage(
    project_root: str | Path,
    dependencies: list[Dependency],
    extensions: list[str] | None = None,
    exclude_patterns: list[str] | None = None,
) -> list[UsageRecord]:
    """Convenience function to collect usage records for a project.

    Args:
        project_root: Project directory.
        dependencies: Declared dependencies.
        extensions: Source file extensions to analyze.
        exclude_patterns: Glob patterns to exclude.

    Returns:
        Usage records in file, then occurrence, order.
    """
    analyzer = UsageAnalyzer(FileEnumerator(extensions, exclude_patterns))
    return analyzer.analyze(project_root, dependencies).usages
