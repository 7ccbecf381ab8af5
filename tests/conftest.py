import os
import pytest

CI_COMPOSE = os.path.join(
    os.path.dirname(os.path.dirname(os.path.abspath(__file__))),
    "deployment", "ci", "docker-compose.ci.yaml",
)


@pytest.fixture
def ci_compose_path():
    return CI_COMPOSE
