import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from courier_crypto.identity import Identity

# 2048-bit keys keep the suite fast; production default is RSAKeyWrapper.KEY_SIZE.
TEST_KEY_SIZE = 2048


@pytest.fixture(scope="session")
def court():
    return Identity.generate(TEST_KEY_SIZE)


@pytest.fixture(scope="session")
def alice():
    return Identity.generate(TEST_KEY_SIZE)


@pytest.fixture(scope="session")
def bob():
    return Identity.generate(TEST_KEY_SIZE)
