from tradingroom.utils.mentions import (
    extract_mentions,
    is_mentioned,
    preview,
    sender_label,
    user_handles,
)


def test_extract_mentions_lowercases_and_dedupes():
    assert extract_mentions("hey @Alice and @alice, ping @bob_99!") == {"alice", "bob_99"}


def test_extract_mentions_empty():
    assert extract_mentions("") == set()
    assert extract_mentions(None) == set()
    assert extract_mentions("no handles here, email me at x@") == set()


def test_user_handles_from_display_name_and_email():
    assert user_handles("jane.doe@example.com", "Jane Doe") == {"janedoe", "jane.doe"}


def test_mention_by_display_name_without_spaces():
    mentions = extract_mentions("nice call @JaneDoe")
    assert is_mentioned(mentions, "jd@example.com", "Jane Doe") is True


def test_mention_by_email_local_part():
    mentions = extract_mentions("@trader42 check this")
    assert is_mentioned(mentions, "trader42@example.com", "Someone Else") is True


def test_no_partial_match():
    mentions = extract_mentions("@jan")
    assert is_mentioned(mentions, "jane@example.com", "Jane") is False


def test_preview_truncates_at_100_chars():
    text = "x" * 150
    out = preview(text)
    assert out == "x" * 100 + "..."
    assert preview("short") == "short"
    assert preview("y" * 100) == "y" * 100


def test_sender_label_fallbacks():
    assert sender_label("a@example.com", "Alice") == "Alice"
    assert sender_label("a@example.com", None) == "a"
    assert sender_label(None, None) == "Someone"
