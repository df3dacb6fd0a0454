"""Pytest configuration and fixtures for dependsight tests."""

import json
import tempfile
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from dependsight.config import DependsightConfig
from dependsight.core.models import Dependency


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def write_files(temp_dir: Path) -> Callable[[dict[str, str]], Path]:
    """Return a helper that writes files relative to the temp directory."""

    def _write(files: dict[str, str]) -> Path:
        for relative, content in files.items():
            path = temp_dir / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        return temp_dir

    return _write


@pytest.fixture
def sample_project(write_files: Callable[[dict[str, str]], Path]) -> Path:
    """Create a small React project with a package.json and sources."""
    package_json = {
        "name": "sample-app",
        "version": "1.0.0",
        "dependencies": {
            "react": "^17.0.2",
            "lodash": "~4.17.20",
            "axios": "0.21.1",
            "@mui/material": "^5.0.0",
        },
        "devDependencies": {
            "jest": "^27.0.0",
        },
    }
    return write_files(
        {
            "package.json": json.dumps(package_json, indent=2),
            "src/App.jsx": (
                "import React, { useState } from 'react';\n"
                "import { Button } from '@mui/material/Button';\n"
                "import Local from './Local';\n"
                "\n"
                "export default function App() {\n"
                "  const [count, setCount] = useState(0);\n"
                "  return <Button onClick={() => setCount(count + 1)}>{count}</Button>;\n"
                "}\n"
            ),
            "src/api.js": (
                "const axios = require('axios');\n"
                "const { get } = require('lodash');\n"
                "\n"
                "module.exports = (url) => axios.get(url).then((r) => get(r, 'data'));\n"
            ),
            "node_modules/react/index.js": "import 'should-not-be-scanned';\n",
            "dist/bundle.js": "require('react');\n",
        }
    )


@pytest.fixture
def offline_config() -> DependsightConfig:
    """Configuration that never retries, so failing mocks return quickly."""
    return DependsightConfig(
        registry={"max_retries": 0, "timeout": 5},
        impact={"dependency_timeout": 5, "max_concurrency": 4},
    )


@pytest.fixture
def react() -> Dependency:
    """The react dependency used across scenarios."""
    return Dependency(name="react", version="17.0.2", is_dev=False)
