import json

from pricematch.cli import load_products, main


def _write_jsonl(path, lines):
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def test_load_products_skips_bad_lines(tmp_path, capsys):
    path = _write_jsonl(tmp_path / "italo.jsonl", [
        json.dumps({"name": "Arroz 5kg", "price": 20}),
        "",
        "{broken",
        json.dumps(["not", "an", "object"]),
        json.dumps({"name": "Feijão 1kg", "price": "R$ 8,00"}),
    ])

    products = load_products(path)

    assert [p["name"] for p in products] == ["Arroz 5kg", "Feijão 1kg"]
    assert "Bad JSON" in capsys.readouterr().out


def test_load_products_missing_file(tmp_path):
    assert load_products(tmp_path / "missing.jsonl") == []


def test_main_writes_comparison(tmp_path, mixed_catalogs):
    italo, marcon, alfa = mixed_catalogs
    paths = [
        _write_jsonl(tmp_path / f"{store}.jsonl", [json.dumps(r, ensure_ascii=False) for r in records])
        for store, records in zip(("italo", "marcon", "alfa"), (italo, marcon, alfa))
    ]
    output = tmp_path / "out" / "comparison.json"

    exit_code = main([str(p) for p in paths] + ["-o", str(output)])

    assert exit_code == 0
    data = json.loads(output.read_text(encoding="utf-8"))
    assert data["stats"]["totalMatches"] == 3
    assert [g["matchType"] for g in data["comparedProducts"]] == ["identifier", "description", "description"]
