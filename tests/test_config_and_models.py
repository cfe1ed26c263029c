import pytest

from shared.errors import (
    NotFoundError,
    ParseFailureError,
    QuotaExceededError,
    UnauthorizedError,
    UpstreamFailureError,
    error_for_status,
)
from shared.helper.HelperPdf import parse_pdf_pages
from shared.models.document import UploadStatus, VectorMetadata, VectorRecord
from shared.models.plan import get_plan, plan_for_subscription
from tests.fakes import make_blank_pdf


def test_helper_config_reads_and_validates(make_config):
    config = make_config(NUM="5", FLOAT="0.5", FLAG="yes", ITEMS="[a, b]", BAD="-3")
    assert config.get_number_val("num") == 5
    assert config.get_number_val("float") == 0.5
    assert config.get_bool_val("flag") is True
    assert config.get_list_val("items") == ["a", "b"]
    assert config.get_positive_int_val("missing", default=7) == 7
    with pytest.raises(ValueError):
        config.get_positive_int_val("bad", default=1)
    with pytest.raises(ValueError):
        config.get_string_val("missing")


def test_plans():
    assert get_plan("free").pages_per_pdf == 5
    assert plan_for_subscription(True).name == "Pro"
    assert plan_for_subscription(True).pages_per_pdf == 25
    assert plan_for_subscription(False).name == "Free"
    with pytest.raises(KeyError):
        get_plan("Enterprise")


def test_status_transitions():
    assert UploadStatus.PROCESSING.can_transition_to(UploadStatus.FAILED)
    assert UploadStatus.FAILED.can_transition_to(UploadStatus.PROCESSING)
    assert not UploadStatus.SUCCESS.can_transition_to(UploadStatus.PROCESSING)
    assert not UploadStatus.PROCESSING.can_transition_to(UploadStatus.PENDING)


def test_vector_record_requires_metadata_and_values():
    record = VectorRecord.model_validate({"id": "abc", "values": [0.1], "metadata": {"text": "t", "pageNumber": 2}})
    assert record.metadata.page_number == 2
    assert record.metadata.model_dump(by_alias=True) == {"text": "t", "pageNumber": 2}
    with pytest.raises(ValueError):
        VectorRecord.model_validate({"id": "abc", "values": [], "metadata": {"text": "t", "pageNumber": 2}})
    with pytest.raises(ValueError):
        VectorRecord.model_validate({"id": "abc", "values": [0.1], "metadata": {"text": "t"}})
    assert VectorMetadata(text="t", page_number=1).page_number == 1


def test_error_taxonomy_status_codes():
    assert UnauthorizedError().status_code == 401
    assert QuotaExceededError("too many pages").status_code == 403
    assert isinstance(error_for_status(404, "gone"), NotFoundError)
    assert isinstance(error_for_status(503, "busy"), UpstreamFailureError)
    assert error_for_status(404, "gone").message == "gone"


def test_pdf_pages_are_counted():
    pages = parse_pdf_pages(make_blank_pdf(3))
    assert [page.page_number for page in pages] == [1, 2, 3]
    assert all(page.text == "" for page in pages)


@pytest.mark.parametrize("content", [b"", b"not a pdf at all"])
def test_unreadable_pdf_is_a_parse_failure(content):
    with pytest.raises(ParseFailureError):
        parse_pdf_pages(content)
