import pytest

from flow_mongodb import DocumentCodec, FilterRequiredError, FilterResolver, Pair, UnsupportedDocumentError


@pytest.fixture()
def resolver():
    return FilterResolver(DocumentCodec())


def test_absent_filter_uses_payload(resolver):
    payload = "{ _id: 2 }"

    assert resolver.resolve(None, payload) == DocumentCodec().normalize(payload)


def test_present_filter_wins_over_payload(resolver):
    assert resolver.resolve({"name": "John"}, {"name": "Olav"}) == {"name": "John"}


@pytest.mark.parametrize("configured", [None, "", "   ", {}, "{}"])
def test_empty_filter_falls_back_to_payload(resolver, configured):
    assert resolver.resolve(configured, Pair("name", "Anton")) == {"name": "Anton"}


def test_missing_filter_and_payload_fails_with_expression(resolver):
    with pytest.raises(FilterRequiredError) as exc_info:
        resolver.resolve(None, None, expression="#[message.attributes().id]")

    assert exc_info.value.expression == "#[message.attributes().id]"
    assert "#[message.attributes().id]" in str(exc_info.value)


def test_empty_payload_is_not_a_usable_filter(resolver):
    with pytest.raises(FilterRequiredError):
        resolver.resolve("", {})


def test_match_all_when_empty():
    resolver = FilterResolver(match_all_when_empty=True)

    assert resolver.resolve(None, None) == {}
    assert resolver.resolve(None, "{ age: 23 }") == {"age": 23}


def test_list_filter_is_rejected(resolver):
    with pytest.raises(UnsupportedDocumentError, match="single document"):
        resolver.resolve([{"name": "John"}], None)
