"""Shared fixtures and sample documents for the PipeSync tests."""
from __future__ import annotations

import os
import sys

import pytest
from PyQt6.QtCore import QCoreApplication

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


# Two adapters, the first with a receiver, an explicit forward (A -> B), a
# last stage without forwards (B) and an exit.  No stage carries coordinates.
TWO_ADAPTERS = """\
<Configuration>
    <Adapter name="First">
        <Receiver name="R1">
            <JavaListener name="L1"/>
        </Receiver>
        <Pipeline firstPipe="A">
            <FixedResultPipe name="A" returnString="hi">
                <Forward name="success" path="B"/>
            </FixedResultPipe>
            <EchoPipe name="B"/>
            <Exit path="EXIT" state="success"/>
        </Pipeline>
    </Adapter>
    <Adapter name="Second">
        <Pipeline>
            <EchoPipe name="A"/>
            <Exit path="EXIT" state="success"/>
        </Pipeline>
    </Adapter>
</Configuration>
"""


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="session")
def qapp():
    """Provide a single QCoreApplication for the entire test session."""
    app = QCoreApplication.instance() or QCoreApplication(sys.argv[:1])
    yield app


@pytest.fixture()
def two_adapters() -> str:
    return TWO_ADAPTERS
