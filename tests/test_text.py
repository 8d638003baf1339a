from menusync.text import best_match, fuzzy_match, infer_category, normalize_name


def test_normalize_name_strips_accents_and_punctuation():
    assert normalize_name("  Café  Olé! ") == "cafe ole"
    assert normalize_name("Woody's Lunch-Box") == "woodys lunchbox"
    assert normalize_name(None) == ""


def test_fuzzy_match_exact_and_containment():
    assert fuzzy_match("Dole Whip", "dole whip!") == 100
    # 9 of 15 characters contained -> 54
    assert fuzzy_match("Dole Whip", "Dole Whip Float") == 54


def test_fuzzy_match_typo_clears_item_threshold():
    assert fuzzy_match("Cheeseburger", "Cheesburger") >= 75


def test_fuzzy_match_empty():
    assert fuzzy_match("", "Burger") == 0
    assert fuzzy_match("Burger", None) == 0


def test_infer_category():
    assert infer_category("Frozen Lemonade") == "beverage"
    assert infer_category("Chocolate Cake") == "dessert"
    assert infer_category("Crispy Chicken Waffle") is None
    assert infer_category("Seasoned Fries") == "side"
    assert infer_category("Jumbo Pretzel") == "snack"
    assert infer_category("Cheeseburger") is None


def test_best_match_respects_threshold():
    names = ["Taco Salad", "Cheeseburger Platter", "Cheeseburger"]
    found, score = best_match("cheeseburger", names, 75)
    assert found == "Cheeseburger" and score == 100
    assert best_match("Lobster Roll", names, 75) == (None, 0)
