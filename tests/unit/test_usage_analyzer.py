"""Tests for the tree-sitter usage analyzer."""

from collections.abc import Callable
from pathlib import Path

import pytest

from dependsight.analysis.usage_analyzer import (
    JavaScriptImportExtractor,
    UsageAnalyzer,
    analyze_usage,
    resolve_package_name,
)
from dependsight.core.models import Dependency, ImportKind
from dependsight.errors import SourceParseError
from dependsight.scanners.manifest import read_manifest


def deps(*names: str, dev: bool = False) -> list[Dependency]:
    return [Dependency(name=name, version="1.0.0", is_dev=dev) for name in names]


class TestResolvePackageName:
    """Tests for specifier to package name resolution."""

    def test_scoped_subpath(self) -> None:
        assert resolve_package_name("@scope/pkg/sub/path") == "@scope/pkg"

    def test_unscoped_subpath(self) -> None:
        assert resolve_package_name("pkg/sub/path") == "pkg"

    def test_bare_names(self) -> None:
        assert resolve_package_name("react") == "react"
        assert resolve_package_name("@types/node") == "@types/node"

    def test_relative_path(self) -> None:
        assert resolve_package_name("./local") == "."


class TestJavaScriptImportExtractor:
    """Tests for import site extraction."""

    @pytest.fixture
    def extractor(self) -> JavaScriptImportExtractor:
        return JavaScriptImportExtractor()

    def test_default_import(self, extractor: JavaScriptImportExtractor) -> None:
        sites = extractor.extract("a.js", "import React from 'react';\n")

        assert len(sites) == 1
        assert sites[0].specifier == "react"
        assert sites[0].import_kind == ImportKind.DEFAULT
        assert sites[0].imported_members == []

    def test_default_takes_priority_over_named(
        self, extractor: JavaScriptImportExtractor
    ) -> None:
        sites = extractor.extract(
            "a.js", "import React, { useState, useEffect } from 'react';\n"
        )

        assert sites[0].import_kind == ImportKind.DEFAULT
        assert sites[0].imported_members == ["useState", "useEffect"]

    def test_default_takes_priority_over_namespace(
        self, extractor: JavaScriptImportExtractor
    ) -> None:
        sites = extractor.extract("a.js", "import def, * as ns from 'mod';\n")

        assert sites[0].import_kind == ImportKind.DEFAULT

    def test_namespace_import(self, extractor: JavaScriptImportExtractor) -> None:
        sites = extractor.extract("a.js", "import * as _ from 'lodash';\n")

        assert sites[0].import_kind == ImportKind.NAMESPACE

    def test_named_import_records_imported_not_local_names(
        self, extractor: JavaScriptImportExtractor
    ) -> None:
        sites = extractor.extract(
            "a.js", "import { debounce, throttle as t } from 'lodash';\n"
        )

        assert sites[0].import_kind == ImportKind.NAMED
        assert sites[0].imported_members == ["debounce", "throttle"]

    def test_side_effect_import(self, extractor: JavaScriptImportExtractor) -> None:
        sites = extractor.extract("a.js", "import 'core-js/stable';\n")

        assert sites[0].specifier == "core-js/stable"
        assert sites[0].import_kind == ImportKind.SIDE_EFFECT
        assert sites[0].imported_members is None

    def test_escape_sequences_in_specifiers_are_decoded(
        self, extractor: JavaScriptImportExtractor
    ) -> None:
        content = (
            r"import React from 're\u0061ct';" "\n"
            r"const _ = require('lo\x64ash');" "\n"
            r"import { a } from '\u{40}scope/pkg';" "\n"
            r"import b from 'it\'s';" "\n"
        )
        sites = extractor.extract("a.js", content)

        assert [s.specifier for s in sites] == ["react", "lodash", "@scope/pkg", "it's"]

    def test_empty_braces_is_side_effect(
        self, extractor: JavaScriptImportExtractor
    ) -> None:
        sites = extractor.extract("a.js", "import {} from 'mod';\n")

        assert sites[0].import_kind == ImportKind.SIDE_EFFECT

    def test_require_is_always_side_effect(
        self, extractor: JavaScriptImportExtractor
    ) -> None:
        content = (
            "const axios = require('axios');\n"
            "const { get, set } = require('lodash');\n"
            "require('dotenv').config();\n"
        )
        sites = extractor.extract("a.js", content)

        assert [s.specifier for s in sites] == ["axios", "lodash", "dotenv"]
        assert all(s.import_kind == ImportKind.SIDE_EFFECT for s in sites)
        assert all(s.imported_members is None for s in sites)

    def test_require_needs_plain_string_and_bare_callee(
        self, extractor: JavaScriptImportExtractor
    ) -> None:
        content = (
            "const a = require(name);\n"
            "const b = require(`tpl`);\n"
            "const c = module.require('x');\n"
            "const d = import('dyn');\n"
        )
        assert extractor.extract("a.js", content) == []

    def test_sites_are_in_occurrence_order(
        self, extractor: JavaScriptImportExtractor
    ) -> None:
        content = (
            "import a from 'first';\n"
            "function load() { return require('second'); }\n"
            "import { c } from 'third';\n"
        )
        sites = extractor.extract("a.js", content)

        assert [s.specifier for s in sites] == ["first", "second", "third"]
        assert [s.line_number for s in sites] == [1, 2, 3]

    def test_jsx_is_accepted(self, extractor: JavaScriptImportExtractor) -> None:
        content = (
            "import React from 'react';\n"
            "export const App = () => <div className=\"x\">{1 + 1}</div>;\n"
        )
        assert len(extractor.extract("App.jsx", content)) == 1

    def test_typescript_decorators_and_class_fields(
        self, extractor: JavaScriptImportExtractor
    ) -> None:
        content = (
            "import { Injectable } from '@angular/core';\n"
            "import type { Observable } from 'rxjs';\n"
            "\n"
            "@Injectable({ providedIn: 'root' })\n"
            "export class DataService {\n"
            "  private count: number = 0;\n"
            "  items: Array<string> = [];\n"
            "  constructor(private readonly name: string) {}\n"
            "  load<T>(value: T): T { return value; }\n"
            "}\n"
        )
        sites = extractor.extract("service.ts", content)

        assert [s.specifier for s in sites] == ["@angular/core", "rxjs"]
        assert sites[1].imported_members == ["Observable"]

    def test_tsx_with_types_and_jsx(self, extractor: JavaScriptImportExtractor) -> None:
        content = (
            "import * as React from 'react';\n"
            "type Props = { label: string };\n"
            "export const Label = ({ label }: Props): JSX.Element => <span>{label}</span>;\n"
        )
        sites = extractor.extract("Label.tsx", content)

        assert sites[0].import_kind == ImportKind.NAMESPACE

    def test_syntax_error_raises(self, extractor: JavaScriptImportExtractor) -> None:
        with pytest.raises(SourceParseError) as exc_info:
            extractor.extract("broken.js", "import { from 'react';\nconst = ;\n")

        assert "broken.js" in exc_info.value.message


class TestUsageAnalyzer:
    """Tests for project-wide usage analysis."""

    def test_sample_project(self, sample_project: Path) -> None:
        dependencies = read_manifest(sample_project)
        report = UsageAnalyzer().analyze(sample_project, dependencies)

        summary = [(u.file, u.dependency.name, u.import_kind) for u in report.usages]
        assert summary == [
            ("src/App.jsx", "react", ImportKind.DEFAULT),
            ("src/App.jsx", "@mui/material", ImportKind.NAMED),
            ("src/api.js", "axios", ImportKind.SIDE_EFFECT),
            ("src/api.js", "lodash", ImportKind.SIDE_EFFECT),
        ]
        assert report.usages[1].imported_members == ["Button"]
        assert report.files_analyzed == 2
        assert report.files_with_usage == 2
        assert report.warnings == []

    def test_usages_reference_declared_dependencies(self, sample_project: Path) -> None:
        dependencies = read_manifest(sample_project)
        usages = analyze_usage(sample_project, dependencies)

        for usage in usages:
            assert usage.dependency in dependencies

    def test_unlisted_packages_are_ignored(
        self, write_files: Callable[[dict[str, str]], Path]
    ) -> None:
        root = write_files({"a.js": "import x from 'transitive';\nimport y from 'listed';\n"})

        usages = analyze_usage(root, deps("listed"))

        assert [u.dependency.name for u in usages] == ["listed"]

    def test_import_and_require_of_same_package_yield_two_records(
        self, write_files: Callable[[dict[str, str]], Path]
    ) -> None:
        root = write_files(
            {"a.js": "import { a } from 'pkg';\nconst p = require('pkg/sub');\n"}
        )

        usages = analyze_usage(root, deps("pkg"))

        assert [u.import_kind for u in usages] == [ImportKind.NAMED, ImportKind.SIDE_EFFECT]

    def test_one_record_per_statement(
        self, write_files: Callable[[dict[str, str]], Path]
    ) -> None:
        root = write_files(
            {"a.js": "import a from 'pkg';\nimport { b } from 'pkg';\nimport 'pkg/style.css';\n"}
        )

        assert len(analyze_usage(root, deps("pkg"))) == 3

    def test_unparseable_file_is_skipped_with_warning(
        self, write_files: Callable[[dict[str, str]], Path]
    ) -> None:
        root = write_files(
            {
                "a_broken.js": "import { from 'pkg';\n",
                "b_ok.js": "import p from 'pkg';\n",
            }
        )

        report = UsageAnalyzer().analyze(root, deps("pkg"))

        assert [u.file for u in report.usages] == ["b_ok.js"]
        assert len(report.warnings) == 1
        assert "a_broken.js" in report.warnings[0]

    def test_undecodable_file_is_skipped(self, temp_dir: Path) -> None:
        (temp_dir / "bin.js").write_bytes(b"\xff\xfe\x00import")
        (temp_dir / "ok.js").write_text("import p from 'pkg';\n")

        report = UsageAnalyzer().analyze(temp_dir, deps("pkg"))

        assert len(report.usages) == 1
        assert len(report.warnings) == 1

    def test_declared_but_unused_dependency_has_no_records(self, sample_project: Path) -> None:
        usages = analyze_usage(sample_project, read_manifest(sample_project))

        assert "jest" not in {u.dependency.name for u in usages}

    def test_idempotent(self, sample_project: Path) -> None:
        dependencies = read_manifest(sample_project)

        first = analyze_usage(sample_project, dependencies)
        second = analyze_usage(sample_project, dependencies)

        assert first == second
