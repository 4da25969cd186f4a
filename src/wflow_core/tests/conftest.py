# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

import pytest

from wflow_core.config import reset_config
from wflow_core.workflow.parser import parse_workflow

CI_WORKFLOW = """\
name: CI
on:
  push:
    branches:
      - main
  pull_request:
    types:
      - opened
jobs:
  build:
    runs-on: ubuntu-latest
    steps:
      - uses: actions/checkout@v4
      - name: Build
        run: make build
  test:
    needs: build
    runs-on: ubuntu-latest
    strategy:
      matrix:
        python:
          - '3.10'
          - '3.11'
        os:
          - ubuntu-latest
          - windows-latest
          - macos-latest
      fail-fast: false
    steps:
      - run: make test
  deploy:
    needs:
      - build
      - test
    runs-on: ubuntu-latest
    steps:
      - run: make deploy
"""


@pytest.fixture(autouse=True)
def fresh_config():
    """Each test reads WFLOW_* settings from its own environment."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def ci_text() -> str:
    return CI_WORKFLOW


@pytest.fixture
def ci_workflow(ci_text):
    result = parse_workflow(ci_text)
    assert result.errors == []
    return result.workflow
