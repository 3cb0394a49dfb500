import pytest

from surveyor.gateway import InMemoryGateway
from surveyor.service import SubmissionService, SurveyorContext
from surveyor.storage import SubmissionLayout

from tests.factories import make_definition


@pytest.fixture
def layout(tmp_path) -> SubmissionLayout:
    return SubmissionLayout(tmp_path / "files")


@pytest.fixture
def definition() -> str:
    return make_definition()


@pytest.fixture
def gateway() -> InMemoryGateway:
    return InMemoryGateway()


@pytest.fixture
def service(layout, gateway) -> SubmissionService:
    return SubmissionService(SurveyorContext(layout=layout, gateway=gateway))
