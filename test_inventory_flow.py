# test_inventory_flow.py
import pytest

from coffeeshop.models.core import IngredientPriceHistory

def jprint(step, r):
    """Helper to print response and assert on failure."""
    assert 200 <= r.status_code < 300, f"{step} -> {r.status_code}: {r.text}"
    return r.json() if r.headers.get("content-type","").startswith("application/json") else r.text


@pytest.fixture
def setup(client, base_url, auth_headers, rng_suffix):
    """A category, two ingredients and a product with a recipe."""
    r = client.post(f"{base_url}/admin/ingredients/categories", headers=auth_headers, json={
        "name": f"Dairy-{rng_suffix}", "color": "#FFFFFF",
    })
    cat = jprint("POST categories", r)["category"]["id"]

    r = client.post(f"{base_url}/admin/ingredients", headers=auth_headers, json={
        "name": "Milk", "unit": "ml", "cost_per_unit": 20, "category_id": cat,
        "current_stock": 1000, "minimum_stock": 500,
    })
    milk = jprint("POST milk", r)["ingredient"]["id"]
    r = client.post(f"{base_url}/admin/ingredients", headers=auth_headers, json={
        "name": "Sugar", "unit": "g", "cost_per_unit": 15, "category_id": cat,
        "current_stock": 100, "minimum_stock": 250,
    })
    sugar = jprint("POST sugar", r)["ingredient"]["id"]

    r = client.post(f"{base_url}/admin/products", headers=auth_headers, json={
        "name": f"Latte-{rng_suffix}", "category": "coffee",
        "variants": [{"size": "Large Cup", "price": 30000, "stock": 4}],
    })
    coffee_id = jprint("POST product", r)["id"]
    vid = f"{coffee_id}-largecup"

    r = client.post(f"{base_url}/admin/recipes", headers=auth_headers, json={
        "variant_id": vid, "name": "Latte L", "serving_size": 350,
    })
    rid = jprint("POST recipe", r)["recipe"]["id"]
    return {"cat": cat, "milk": milk, "sugar": sugar, "variant": vid, "recipe": rid, "coffee": coffee_id}

def _variant(client, base_url, auth_headers, vid):
    return jprint("GET variant", client.get(f"{base_url}/admin/variants/{vid}", headers=auth_headers))


# ---------- ingredients ----------

def test_ingredient_requires_core_fields(client, base_url, auth_headers, setup):
    r = client.post(f"{base_url}/admin/ingredients", headers=auth_headers, json={"name": "Foam", "unit": "ml"})
    assert r.status_code == 400
    assert r.json()["detail"] == "Name, unit, cost_per_unit, and category_id are required"

def test_ingredient_names_are_unique(client, base_url, auth_headers, setup):
    r = client.post(f"{base_url}/admin/ingredients", headers=auth_headers, json={
        "name": "Milk", "unit": "ml", "cost_per_unit": 1, "category_id": setup["cat"],
    })
    assert r.status_code == 400
    # exact match only
    r = client.post(f"{base_url}/admin/ingredients", headers=auth_headers, json={
        "name": "milk", "unit": "ml", "cost_per_unit": 1, "category_id": setup["cat"],
    })
    jprint("POST lowercase milk", r)

    r = client.put(f"{base_url}/admin/ingredients/{setup['sugar']}", headers=auth_headers, json={
        "name": "Milk", "unit": "g", "cost_per_unit": 15, "category_id": setup["cat"],
    })
    assert r.status_code == 400
    assert r.json()["detail"] == "Another ingredient with this name already exists"

def test_unknown_ingredient_is_404(client, base_url, auth_headers, setup):
    r = client.put(f"{base_url}/admin/ingredients/9999", headers=auth_headers, json={
        "name": "Ghost", "unit": "g", "cost_per_unit": 1, "category_id": setup["cat"],
    })
    assert r.status_code == 404
    assert client.delete(f"{base_url}/admin/ingredients/9999", headers=auth_headers).status_code == 404

def test_list_flattens_category_and_low_stock(client, base_url, auth_headers, setup, rng_suffix):
    rows = jprint("GET ingredients", client.get(f"{base_url}/admin/ingredients", headers=auth_headers))["ingredients"]
    assert [i["name"] for i in rows] == ["Milk", "Sugar"]
    assert rows[0]["category_name"] == f"Dairy-{rng_suffix}"
    assert rows[0]["category_color"] == "#FFFFFF"

    low = jprint("GET low-stock", client.get(f"{base_url}/admin/ingredients/low-stock", headers=auth_headers))
    assert [i["name"] for i in low["ingredients"]] == ["Sugar"]

def test_category_validation(client, base_url, auth_headers, setup, rng_suffix):
    r = client.post(f"{base_url}/admin/ingredients/categories", headers=auth_headers, json={})
    assert r.status_code == 400
    r = client.post(f"{base_url}/admin/ingredients/categories", headers=auth_headers, json={"name": f"Dairy-{rng_suffix}"})
    assert r.status_code == 400
    r = client.post(f"{base_url}/admin/ingredients/categories", headers=auth_headers, json={"name": "Tea"})
    assert jprint("POST Tea", r)["category"]["color"] == "#6B7280"
    cats = jprint("GET categories", client.get(f"{base_url}/admin/ingredients/categories", headers=auth_headers))
    assert len(cats["categories"]) == 2

def test_ingredient_in_use_cannot_be_deleted(client, base_url, auth_headers, setup):
    line = jprint("POST line", client.post(f"{base_url}/admin/recipe-ingredients", headers=auth_headers, json={
        "recipe_id": setup["recipe"], "ingredient_id": setup["milk"], "quantity": 200,
    }))["recipe_ingredient"]

    r = client.delete(f"{base_url}/admin/ingredients/{setup['milk']}", headers=auth_headers)
    assert r.status_code == 400
    assert "used in recipes" in r.json()["detail"]

    jprint("DELETE line", client.delete(f"{base_url}/admin/recipe-ingredients/{line['id']}", headers=auth_headers))
    jprint("DELETE milk", client.delete(f"{base_url}/admin/ingredients/{setup['milk']}", headers=auth_headers))


def test_deleting_ingredient_keeps_price_history(client, base_url, auth_headers, setup, db_session):
    r = client.put(f"{base_url}/admin/ingredients/{setup['sugar']}", headers=auth_headers, json={
        "name": "Sugar", "unit": "g", "cost_per_unit": 18, "category_id": setup["cat"],
    })
    jprint("PUT sugar", r)
    before = db_session.query(IngredientPriceHistory).count()
    assert before == 1

    jprint("DELETE sugar", client.delete(f"{base_url}/admin/ingredients/{setup['sugar']}", headers=auth_headers))
    rows = db_session.query(IngredientPriceHistory).all()
    assert len(rows) == before
    assert rows[0].ingredient_id is None
    assert (float(rows[0].old_price), float(rows[0].new_price)) == (15.0, 18.0)


# ---------- recipe lines ----------

def test_line_validation(client, base_url, auth_headers, setup):
    url = f"{base_url}/admin/recipe-ingredients"
    r = client.post(url, headers=auth_headers, json={
        "recipe_id": setup["recipe"], "ingredient_id": setup["milk"], "quantity": 0,
    })
    assert r.status_code == 400
    r = client.post(url, headers=auth_headers, json={
        "recipe_id": setup["recipe"], "ingredient_id": 9999, "quantity": 5,
    })
    assert r.status_code == 404

    jprint("POST line", client.post(url, headers=auth_headers, json={
        "recipe_id": setup["recipe"], "ingredient_id": setup["milk"], "quantity": 5,
    }))
    r = client.post(url, headers=auth_headers, json={
        "recipe_id": setup["recipe"], "ingredient_id": setup["milk"], "quantity": 7,
    })
    assert r.status_code == 400
    assert "already in the recipe" in r.json()["detail"]

def test_line_changes_keep_recipe_and_variant_in_step(client, base_url, auth_headers, setup):
    url = f"{base_url}/admin/recipe-ingredients"
    milk = jprint("POST milk line", client.post(url, headers=auth_headers, json={
        "recipe_id": setup["recipe"], "ingredient_id": setup["milk"], "quantity": 200,
    }))["recipe_ingredient"]
    sugar = jprint("POST sugar line", client.post(url, headers=auth_headers, json={
        "recipe_id": setup["recipe"], "ingredient_id": setup["sugar"], "quantity": 10, "notes": "optional",
    }))["recipe_ingredient"]
    assert (milk["cost"], sugar["cost"]) == (4000.0, 150.0)

    d = _variant(client, base_url, auth_headers, setup["variant"])
    assert d["recipe"]["estimated_cost"] == pytest.approx(4150.0)
    assert d["variant"]["cost_price"] == pytest.approx(4150.0)

    upd = jprint("PUT milk line", client.put(f"{url}/{milk['id']}", headers=auth_headers, json={"quantity": 250}))
    assert upd["recipe_ingredient"]["cost"] == pytest.approx(5000.0)
    d = _variant(client, base_url, auth_headers, setup["variant"])
    assert d["variant"]["cost_price"] == pytest.approx(5150.0)

    # removing a line lowers the recipe total right away
    jprint("DELETE sugar line", client.delete(f"{url}/{sugar['id']}", headers=auth_headers))
    d = _variant(client, base_url, auth_headers, setup["variant"])
    assert d["recipe"]["estimated_cost"] == pytest.approx(5000.0)
    assert d["variant"]["cost_price"] == pytest.approx(5000.0)
    assert d["variant"]["profit_amount"] == pytest.approx(25000.0)
    assert len(d["recipe"]["ingredients"]) == 1

    r = client.put(f"{url}/{milk['id']}", headers=auth_headers, json={"quantity": -1})
    assert r.status_code == 400
    assert client.put(f"{url}/9999", headers=auth_headers, json={"quantity": 1}).status_code == 404


# ---------- recipes ----------

def test_one_recipe_per_variant(client, base_url, auth_headers, setup):
    r = client.post(f"{base_url}/admin/recipes", headers=auth_headers, json={
        "variant_id": setup["variant"], "name": "Again", "serving_size": 100,
    })
    assert r.status_code == 400
    r = client.post(f"{base_url}/admin/recipes", headers=auth_headers, json={"variant_id": setup["variant"]})
    assert r.status_code == 400
    assert r.json()["detail"] == "variant_id, name, and serving_size are required"

def test_deleting_recipe_resets_variant_cost(client, base_url, auth_headers, setup):
    jprint("POST line", client.post(f"{base_url}/admin/recipe-ingredients", headers=auth_headers, json={
        "recipe_id": setup["recipe"], "ingredient_id": setup["milk"], "quantity": 100,
    }))
    r = client.put(f"{base_url}/admin/recipes/{setup['recipe']}", headers=auth_headers, json={
        "name": "Latte L v2", "serving_size": 360,
    })
    assert jprint("PUT recipe", r)["recipe"]["name"] == "Latte L v2"

    jprint("DELETE recipe", client.delete(f"{base_url}/admin/recipes/{setup['recipe']}", headers=auth_headers))
    d = _variant(client, base_url, auth_headers, setup["variant"])
    assert d["recipe"] is None
    assert d["variant"]["cost_price"] == 0
    assert d["variant"]["profit_amount"] == pytest.approx(30000.0)
    assert d["variant"]["profit_percentage"] == pytest.approx(100.0)
    # the ingredient is free again
    jprint("DELETE milk", client.delete(f"{base_url}/admin/ingredients/{setup['milk']}", headers=auth_headers))

def test_recalculate_single_recipe(client, base_url, auth_headers, setup):
    r = client.post(f"{base_url}/admin/recipes/{setup['recipe']}/recalculate", headers=auth_headers)
    assert jprint("POST recalculate", r) == {"ok": True, "estimated_cost": 0.0}
    r = client.post(f"{base_url}/admin/recipes/9999/recalculate", headers=auth_headers)
    assert r.status_code == 404


# ---------- products & stock ----------

def test_price_change_rederives_profit(client, base_url, auth_headers, setup):
    jprint("POST line", client.post(f"{base_url}/admin/recipe-ingredients", headers=auth_headers, json={
        "recipe_id": setup["recipe"], "ingredient_id": setup["milk"], "quantity": 150,
    }))
    r = client.put(f"{base_url}/admin/products/{setup['coffee']}", headers=auth_headers, json={
        "name": "Latte", "variants": [
            {"id": setup["variant"], "size": "Large Cup", "price": 12000, "stock": 4},
            {"size": "Small", "price": 18000, "stock": 0},
        ],
    })
    jprint("PUT product", r)
    d = _variant(client, base_url, auth_headers, setup["variant"])
    assert d["variant"]["cost_price"] == pytest.approx(3000.0)
    assert d["variant"]["profit_amount"] == pytest.approx(9000.0)
    assert d["variant"]["profit_percentage"] == pytest.approx(75.0)

    products = jprint("GET products", client.get(f"{base_url}/admin/products", headers=auth_headers))["coffees"]
    sizes = {v["id"]: v["cost_price"] for v in products[0]["variants"]}
    assert sizes == {setup["variant"]: pytest.approx(3000.0), f"{setup['coffee']}-small": 0.0}

def test_product_delete_cascades_recipe(client, base_url, auth_headers, setup):
    jprint("POST line", client.post(f"{base_url}/admin/recipe-ingredients", headers=auth_headers, json={
        "recipe_id": setup["recipe"], "ingredient_id": setup["milk"], "quantity": 150,
    }))
    jprint("DELETE product", client.delete(f"{base_url}/admin/products/{setup['coffee']}", headers=auth_headers))
    assert client.get(f"{base_url}/admin/variants/{setup['variant']}", headers=auth_headers).status_code == 404
    # no lines left pointing at milk
    jprint("DELETE milk", client.delete(f"{base_url}/admin/ingredients/{setup['milk']}", headers=auth_headers))

def test_stock_updates_drive_storefront_availability(client, base_url, auth_headers, setup):
    vid = setup["variant"]
    jprint("PUT stock", client.put(f"{base_url}/admin/stock", headers=auth_headers, json={"variant_id": vid, "stock": 0}))
    menu = jprint("GET /coffees", client.get(f"{base_url}/coffees"))
    assert menu["coffees"][0]["available"] is False
    assert menu["coffees"][0]["variants"][0]["available"] is False

    # flagged available but no stock still reads as unavailable
    jprint("PUT stock", client.put(f"{base_url}/admin/stock", headers=auth_headers,
                                   json={"variant_id": vid, "stock": 0, "available": True}))
    assert jprint("GET /coffees", client.get(f"{base_url}/coffees"))["coffees"][0]["available"] is False

    r = client.post(f"{base_url}/admin/stock/bulk", headers=auth_headers, json={"updates": [
        {"variant_id": vid, "stock": 8},
        {"stock": 3},
        {"variant_id": "missing", "stock": 1},
    ]})
    assert jprint("POST stock bulk", r)["updated"] == 1
    menu = jprint("GET /coffees", client.get(f"{base_url}/coffees"))
    v = menu["coffees"][0]["variants"][0]
    assert (v["stock"], v["available"]) == (8, True)

    r = client.put(f"{base_url}/admin/stock", headers=auth_headers, json={"variant_id": vid})
    assert r.status_code == 400
    r = client.put(f"{base_url}/admin/stock", headers=auth_headers, json={"variant_id": "missing", "stock": 2})
    assert r.status_code == 404
