from mangaverse.utils.franchise import deduplicate_by_franchise, extract_franchise, short_title


def test_extract_franchise_strips_subtitles():
    assert extract_franchise("Naruto: Shippuden") == "naruto"
    assert extract_franchise("Naruto - Road to Ninja") == "naruto"
    assert extract_franchise("Attack on Titan Season 3 Part 2") == "attack on titan"
    assert extract_franchise("Kaguya-sama: Love is War Season 2") == "kaguya-sama"
    assert extract_franchise("  Monster ") == "monster"
    assert extract_franchise("") == ""


def test_short_title():
    assert short_title("Berserk: The Golden Age Arc") == "Berserk"
    assert short_title("Solo Leveling") == "Solo Leveling"


def test_deduplicate_keeps_first_per_franchise():
    items = [
        {"title": "Naruto"},
        {"title": "Bleach"},
        {"title": "Naruto: Shippuden"},
        {"title": "Bleach: Thousand-Year Blood War"},
        {"title": "One Piece"},
    ]
    kept = deduplicate_by_franchise(items)
    assert [i["title"] for i in kept] == ["Naruto", "Bleach", "One Piece"]


def test_deduplicate_respects_per_franchise_cap():
    items = [{"title": "Naruto"}, {"title": "Naruto: Shippuden"}, {"title": "Naruto - Boruto"}]
    assert len(deduplicate_by_franchise(items, max_per_franchise=2)) == 2
