import pytest

from pricematch import CatalogError, compare_catalogs, run_comparison


class StubMatcher:
    def __init__(self, proposals):
        self.proposals = proposals
        self.calls = 0

    def propose_matches(self, names_a, names_b):
        self.calls += 1
        return list(self.proposals)


def test_rice_scenario():
    italo = [{"name": "Arroz Tio João 5kg", "gtin": "7891234567895", "price": "R$ 24,90"}]
    marcon = [{"name": "Arroz Tio Joao 5kg", "gtin": "7891234567895", "price": 22.50}]

    result = compare_catalogs(italo, marcon, [])

    assert len(result.compared_products) == 1
    group = result.compared_products[0]
    assert group.match_type == "identifier"
    assert group.best_store == "marcon"
    assert group.best_price == 22.50
    assert group.worst_price == pytest.approx(24.90)
    assert result.unmatched_products == []


def test_gum_scenario():
    italo = [{"name": "Chiclete Trident Menta 8g", "price": 3.50}]
    marcon = [{"name": "Goma de Mascar Trident Menta 8g", "price": 3.20}]

    result = compare_catalogs(italo, marcon, [])

    assert len(result.compared_products) == 1
    group = result.compared_products[0]
    assert group.match_type == "description"
    assert group.match_score >= 0.5


def test_cola_scenario():
    italo = [{"name": "Refrigerante Cola 350ml", "price": 4.00}]
    marcon = [{"name": "Refrigerante Cola 2L", "price": 9.00}]

    result = compare_catalogs(italo, marcon, [])

    assert result.compared_products == []
    assert result.stats["totalMatches"] == 0
    assert [(p.store, p.name) for p in result.unmatched_products] == [
        ("italo", "Refrigerante Cola 350ml"),
        ("marcon", "Refrigerante Cola 2L"),
    ]


def test_mixed_catalogs(mixed_catalogs):
    result = compare_catalogs(*mixed_catalogs)

    names = [g.representative_name for g in result.compared_products]
    assert names == ["Arroz Tio João 5kg", "Chiclete Trident Menta 8g", "Detergente Ypê Neutro 500ml"]

    rice, gum, detergent = result.compared_products
    assert rice.match_type == "identifier"
    assert rice.stores == ["italo", "marcon", "alfa"]
    assert gum.match_type == "description"
    assert detergent.stores == ["italo", "marcon", "alfa"]
    assert detergent.best_store == "alfa"
    assert detergent.worst_store == "marcon"
    assert detergent.per_store["marcon"].price == 2.59

    stats = result.stats
    assert stats["totalMatches"] == 3
    assert stats["matchesByType"] == {"identifier": 1, "description": 2, "semantic": 0}
    assert stats["unmatchedCount"] == 2
    assert stats["winsByStore"] == {"italo": 0, "marcon": 2, "alfa": 1}
    assert stats["inputCounts"] == {"italo": 4, "marcon": 4, "alfa": 2}


def test_group_invariants(mixed_catalogs):
    result = compare_catalogs(*mixed_catalogs)

    seen = set()
    for group in result.compared_products:
        assert len(group.per_store) >= 2
        prices = [offer.price for offer in group.per_store.values()]
        assert group.best_price == min(prices)
        assert group.worst_price == max(prices)
        assert group.best_store in group.per_store
        assert group.worst_store in group.per_store
        for member in group.members:
            assert member.key not in seen
            seen.add(member.key)

    unmatched = {(p.store, p.name) for p in result.unmatched_products}
    assert len(seen) + len(unmatched) == sum(result.stats["inputCounts"].values())


def test_repeated_runs_are_identical(mixed_catalogs):
    first = compare_catalogs(*mixed_catalogs).to_dict()
    second = compare_catalogs(*mixed_catalogs).to_dict()
    assert first == second


def test_nameless_record_matches_by_identifier_only():
    italo = [
        {"gtin": "7891234567895", "price": 5.0},
        {"price": 3.0},
    ]
    marcon = [{"name": "Leite Condensado Moça 395g", "gtin": "7891234567895", "price": 5.5}]

    result = compare_catalogs(italo, marcon, [])

    assert result.compared_products[0].representative_name == "Leite Condensado Moça 395g"
    assert [(p.store, p.name, p.price) for p in result.unmatched_products] == [("italo", "", 3.0)]


def test_semantic_stage_adds_groups():
    italo = [{"name": "Sabonete Dove Original 90g", "price": 3.50}]
    marcon = [{"name": "Sab. em Barra Dove Cremoso 90g", "price": 3.20}]
    matcher = StubMatcher([(0, 0, 0.93)])

    result = compare_catalogs(italo, marcon, [], use_semantic_ai=True, semantic_matcher=matcher)

    assert matcher.calls == 1
    assert result.stats["matchesByType"]["semantic"] == 1
    assert result.compared_products[0].match_score == 0.93


def test_semantic_stage_needs_the_flag():
    italo = [{"name": "Sabonete Dove Original 90g", "price": 3.50}]
    marcon = [{"name": "Sab. em Barra Dove Cremoso 90g", "price": 3.20}]
    matcher = StubMatcher([(0, 0, 0.93)])

    result = compare_catalogs(italo, marcon, [], semantic_matcher=matcher)

    assert matcher.calls == 0
    assert result.stats["totalMatches"] == 0


def test_semantic_without_credentials_is_skipped(monkeypatch):
    monkeypatch.delenv("PRICEMATCH_AI_API_KEY", raising=False)
    monkeypatch.delenv("LOVABLE_API_KEY", raising=False)

    result = compare_catalogs([{"name": "Sabonete Dove 90g", "price": 3.5}], [], [], use_semantic_ai=True)

    assert result.stats["totalMatches"] == 0
    assert result.stats["unmatchedCount"] == 1


@pytest.mark.parametrize("italo, marcon, alfa", [
    (None, [], []),
    ([], "not a list", []),
    ([], [], {"name": "x"}),
    ([{"name": "ok"}, "bad record"], [], []),
])
def test_bad_input_shape_raises(italo, marcon, alfa):
    with pytest.raises(CatalogError):
        compare_catalogs(italo, marcon, alfa)


def test_run_comparison_success(mixed_catalogs):
    italo, marcon, alfa = mixed_catalogs
    response = run_comparison({
        "italoProducts": italo,
        "marconProducts": marcon,
        "alfaProducts": alfa,
        "useSemanticAI": False,
    })

    assert response["success"] is True
    assert set(response) == {"success", "comparedProducts", "unmatchedProducts", "stats"}
    first = response["comparedProducts"][0]
    assert first["representativeName"] == "Arroz Tio João 5kg"
    assert first["matchType"] == "identifier"
    assert first["perStore"]["marcon"]["price"] == 22.50
    assert response["unmatchedProducts"][0]["store"] == "italo"


@pytest.mark.parametrize("payload", [
    None,
    [],
    {"italoProducts": [], "marconProducts": []},
    {"italoProducts": "x", "marconProducts": [], "alfaProducts": []},
])
def test_run_comparison_failure_shape(payload):
    response = run_comparison(payload)

    assert response["success"] is False
    assert isinstance(response["error"], str) and response["error"]
    assert "comparedProducts" not in response


@pytest.mark.parametrize("flag, expected_calls", [
    (True, 1),
    ("false", 0),
    ("true", 0),
    (1, 0),
    (None, 0),
])
def test_run_comparison_semantic_flag_must_be_true(flag, expected_calls):
    matcher = StubMatcher([(0, 0, 0.93)])
    payload = {
        "italoProducts": [{"name": "Sabonete Dove Original 90g", "price": 3.50}],
        "marconProducts": [{"name": "Sab. em Barra Dove Cremoso 90g", "price": 3.20}],
        "alfaProducts": [],
        "useSemanticAI": flag,
    }

    response = run_comparison(payload, semantic_matcher=matcher)

    assert response["success"] is True
    assert matcher.calls == expected_calls
    assert response["stats"]["matchesByType"]["semantic"] == expected_calls


def test_run_comparison_with_no_matches_is_success():
    response = run_comparison({"italoProducts": [], "marconProducts": [], "alfaProducts": []})

    assert response["success"] is True
    assert response["stats"]["totalMatches"] == 0
