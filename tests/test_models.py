from game_catalog.models import NamedRef, NormalizedGame, RecommendedGame


def test_to_dict_omits_unset_optional_fields():
    game = NormalizedGame(id=1, name="Hades", rating=93.0)

    assert game.to_dict() == {"id": 1, "name": "Hades", "rating": 93.0, "genres": [], "platforms": []}


def test_to_dict_serializes_nested_values():
    similar = NormalizedGame(id=2, name="Bastion", genres=[NamedRef(id=31, name="Adventure")])
    game = NormalizedGame(
        id=1,
        name="Hades",
        cover={"url": "https://images.igdb.com/igdb/image/upload/t_cover_big/co1.jpg"},
        platforms=[NamedRef(id=6, name="PC (Microsoft Windows)")],
        screenshots=[],
        similar_games=[similar],
    )

    data = game.to_dict()

    assert data["platforms"] == [{"id": 6, "name": "PC (Microsoft Windows)"}]
    assert data["screenshots"] == []
    assert data["similar_games"] == [
        {"id": 2, "name": "Bastion", "genres": [{"id": 31, "name": "Adventure"}], "platforms": []},
    ]


def test_recommended_game_includes_score():
    game = RecommendedGame(id=1, name="Hades", similarity_score=0.75)

    assert game.to_dict()["similarity_score"] == 0.75
