"""
Test configuration for Kestrel tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parsing import KestrelGrammar
from interpreter import create_interpreter


@pytest.fixture
def grammar():
  """Provide a fresh grammar instance for each test"""
  return KestrelGrammar()


@pytest.fixture
def interpreter():
  """Provide an interpreter with an empty global environment"""
  return create_interpreter()


@pytest.fixture
def run(interpreter):
  """Evaluate source text in a fresh interpreter and return the resulting value"""
  return interpreter.run
