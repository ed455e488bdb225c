from orderbot.services.trigger_resolver import (
    CONFLICT_DUPLICATE,
    CONFLICT_OVERLAP,
    Trigger,
    coerce_triggers,
    detect_trigger_conflicts,
    find_best_trigger_match,
)


class TestFindBestTriggerMatch:
    def test_price_keyword_returns_configured_response(self):
        triggers = coerce_triggers([{"keyword": "price", "response": "Our prices start at ₹499"}])

        match = find_best_trigger_match("what's the price?", triggers)

        assert match is not None
        assert match.response == "Our prices start at ₹499"

    def test_longest_keyword_wins_regardless_of_order(self):
        triggers = [
            Trigger(keyword="price", response="generic"),
            Trigger(keyword="price list", response="specific"),
        ]

        assert find_best_trigger_match("send me the price list", triggers).response == "specific"
        assert find_best_trigger_match("send me the price list", list(reversed(triggers))).response == "specific"

    def test_exact_match_beats_longer_contained_keyword(self):
        triggers = [
            Trigger(keyword="hours please", response="long"),
            Trigger(keyword="hours", response="exact"),
        ]

        assert find_best_trigger_match("  HOURS ", triggers).response == "exact"

    def test_equal_length_tie_is_alphabetical(self):
        triggers = [Trigger(keyword="ship", response="s"), Trigger(keyword="cost", response="c")]

        assert find_best_trigger_match("ship cost?", triggers).response == "c"

    def test_no_match(self):
        triggers = [Trigger(keyword="refund", response="r")]
        assert find_best_trigger_match("hello", triggers) is None
        assert find_best_trigger_match("", triggers) is None

    def test_coerce_drops_blank_entries(self):
        triggers = coerce_triggers([{"keyword": " ", "response": "x"}, {"keyword": "hi"}, None, {"keyword": "a", "response": "b"}])
        assert triggers == [Trigger(keyword="a", response="b")]


class TestDetectTriggerConflicts:
    def test_clean_configuration_is_ok(self):
        check = detect_trigger_conflicts([Trigger("price", "p"), Trigger("delivery", "d")])
        assert check.ok is True
        assert check.conflicts == []

    def test_duplicate_keyword_with_different_response(self):
        check = detect_trigger_conflicts([Trigger("Price", "a"), Trigger("price ", "b")])

        assert check.ok is False
        assert check.conflicts[0].kind == CONFLICT_DUPLICATE

    def test_contained_keyword_is_overlap(self):
        check = detect_trigger_conflicts([Trigger("price", "a"), Trigger("price list", "b")])

        assert check.ok is False
        assert check.conflicts[0].kind == CONFLICT_OVERLAP
        assert check.conflicts[0].keywords == ["price", "price list"]

    def test_same_response_is_not_a_conflict(self):
        check = detect_trigger_conflicts([Trigger("hi", "Hello!"), Trigger("hi there", "Hello!")])
        assert check.ok is True
