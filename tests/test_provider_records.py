import pytest

from tjbot.records import ProviderResponseError, parse_classes, parse_dialog_reply, parse_first_tone_category


def test_parse_dialog_reply_reads_text_context_and_counter():
    reply = parse_dialog_reply(
        {
            "output": {"text": ["Hello friend", "ignored"]},
            "context": {"conversation_id": "c1", "system": {"dialog_turn_counter": 2}},
        }
    )
    assert reply.text == "Hello friend"
    assert reply.turn_counter == 2
    assert reply.context["conversation_id"] == "c1"


def test_parse_dialog_reply_tolerates_missing_counter_and_empty_text():
    reply = parse_dialog_reply({"output": {"text": []}, "context": {"system": {}}})
    assert reply.text == ""
    assert reply.turn_counter is None


@pytest.mark.parametrize(
    "payload",
    [
        None,
        {"output": {"text": ["x"]}},
        {"context": {}, "output": {}},
        {"context": [], "output": {"text": ["x"]}},
        {"context": {}, "output": {"text": "x"}},
        {"context": {}, "output": {"text": [None]}},
    ],
)
def test_parse_dialog_reply_rejects_malformed(payload):
    with pytest.raises(ProviderResponseError) as excinfo:
        parse_dialog_reply(payload)
    assert excinfo.value.provider == "assistant"


def test_parse_first_tone_category_requires_document_tone():
    with pytest.raises(ProviderResponseError):
        parse_first_tone_category({"sentences_tone": []})
    with pytest.raises(ProviderResponseError):
        parse_first_tone_category({"document_tone": {"tone_categories": [{"tones": [{"tone_id": "joy", "score": "high"}]}]}})


def test_parse_classes_reads_first_classifier():
    classes = parse_classes(
        {"images": [{"classifiers": [{"classes": [{"class": "ghost", "score": 0.4}]}, {"classes": [{"class": "x", "score": 1}]}]}]}
    )
    assert [(c.label, c.score) for c in classes] == [("ghost", 0.4)]


def test_parse_first_tone_category_ignores_malformed_later_categories():
    category = parse_first_tone_category(
        {
            "document_tone": {
                "tone_categories": [
                    {"category_id": "emotion_tone", "tones": [{"tone_id": "joy", "score": 0.8}]},
                    {"category_id": "language_tone", "tones": [{"tone_id": "analytical"}]},
                ]
            }
        }
    )
    assert category is not None
    assert category.category_id == "emotion_tone"
    assert [(t.tone_id, t.score) for t in category.tones] == [("joy", 0.8)]


def test_parse_first_tone_category_empty_list_is_none():
    assert parse_first_tone_category({"document_tone": {"tone_categories": []}}) is None


@pytest.mark.parametrize("counter, expected", [(2, 2), (2.0, 2), (2.9, None), (True, None), ("2", None)])
def test_parse_dialog_reply_only_accepts_whole_turn_counters(counter, expected):
    reply = parse_dialog_reply({"output": {"text": ["hi"]}, "context": {"system": {"dialog_turn_counter": counter}}})
    assert reply.turn_counter == expected
