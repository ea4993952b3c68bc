import pytest

from storefinder.services.query_capability import LocalQueryCapability, haversine_m, tokenize


def test_tokenize_drops_stopwords_and_folds_plurals():
    assert tokenize("The Coffee Shops of Hamilton") == ["coffee", "shop", "hamilton"]
    assert tokenize("bakeries") == ["bakery"]
    assert tokenize("glass") == ["glass"]


def test_haversine_zero_and_known_distance():
    assert haversine_m(-79.87, 43.25, -79.87, 43.25) == 0.0
    # One degree of latitude is ~111.2 km on the mean-radius sphere.
    assert haversine_m(0.0, 0.0, 0.0, 1.0) == pytest.approx(111_195, rel=1e-3)


def test_score_search_drops_non_matches_and_orders_desc():
    cap = LocalQueryCapability()
    docs = [
        ("a", "Bookshop with reading nook"),
        ("b", "Coffee and tea"),
        ("c", "Coffee coffee coffee"),
        ("d", "Coffee bar serving tea and cake"),
    ]
    ranked = cap.score_search("coffee tea", docs)

    keys = [k for k, _ in ranked]
    scores = [s for _, s in ranked]
    assert "a" not in keys
    assert scores == sorted(scores, reverse=True)
    # Matching both terms beats repeating one term.
    assert keys.index("b") < keys.index("c")
    assert keys.index("d") < keys.index("c")


def test_score_search_empty_query():
    assert LocalQueryCapability().score_search("the and", [("a", "the and")]) == []


def test_score_search_ties_keep_input_order():
    cap = LocalQueryCapability()
    ranked = cap.score_search("pizza", [("x", "pizza place"), ("y", "pizza place")])
    assert [k for k, _ in ranked] == ["x", "y"]


def test_radius_search_filters_and_sorts_nearest_first():
    cap = LocalQueryCapability()
    points = [
        ("far", 0.0, 0.5),  # ~55 km
        ("mid", 0.0, 0.05),  # ~5.5 km
        ("near", 0.0, 0.01),  # ~1.1 km
    ]
    ranked = cap.radius_search(0.0, 0.0, 10_000, points)

    assert [k for k, _ in ranked] == ["near", "mid"]
    assert ranked[0][1] < ranked[1][1] <= 10_000


def test_aggregate_average():
    cap = LocalQueryCapability()
    assert cap.aggregate_average([5, 4, 3]) == 4.0
    assert cap.aggregate_average([]) is None
