import pytest

pytestmark = pytest.mark.integration

HAPPY = "I am so happy and excited about my new job!"
SAD = "I cried all evening, I miss my family and feel lonely."


def create(client, title="My day", content=HAPPY):
    response = client.post("/api/entries", json={"title": title, "content": content})
    assert response.status_code == 201, response.text
    return response.json()


def emotion_names(entry):
    return [e["emotion"] for e in entry["emotions"]]


def theme_names(entry):
    return [t["theme"] for t in entry["themes"]]


def test_requires_login(client):
    assert client.get("/api/entries").status_code == 401
    assert client.post("/api/entries", json={"title": "t", "content": "c"}).status_code == 401
    assert client.get("/api/entries/starred").status_code == 401


def test_create_returns_entry_with_analysis(user_client):
    entry = create(user_client)

    assert entry["title"] == "My day"
    assert entry["isStarred"] is False
    assert entry["clarityRating"] == 0
    assert {"id", "userId", "createdAt", "updatedAt"} <= entry.keys()
    assert {"Happy", "Excited"} <= set(emotion_names(entry))
    assert "Work" in theme_names(entry)
    assert all(0 <= e["score"] <= 100 for e in entry["emotions"])
    assert all(e["entryId"] == entry["id"] for e in entry["emotions"])


def test_fetch_round_trip(user_client):
    created = create(user_client)

    fetched = user_client.get(f"/api/entries/{created['id']}").json()

    assert fetched["emotions"] == created["emotions"]
    assert fetched["themes"] == created["themes"]


def test_no_keyword_content_gets_sentinel_tags(user_client):
    entry = create(user_client, content="xyzzy plugh")

    assert [(e["emotion"], e["score"]) for e in entry["emotions"]] == [("Neutral", 50)]
    assert theme_names(entry) == ["General"]


def test_list_returns_results_and_insights(user_client):
    first = create(user_client, "First")
    second = create(user_client, "Second", SAD)

    body = user_client.get("/api/entries").json()

    assert [e["id"] for e in body["results"]] == [second["id"], first["id"]]
    assert len(body["insights"]) == 1
    insight = body["insights"][0]
    assert insight["title"] == "Work-Life Balance"
    assert insight["suggestedColor"] == "blue"
    assert insight["derivedEntryCount"] == 1


def test_empty_list_still_has_insight(user_client):
    body = user_client.get("/api/entries").json()

    assert body["results"] == []
    assert body["insights"][0]["derivedEntryCount"] == 0


def test_other_users_entry_is_forbidden(user_client, other_client):
    entry = create(user_client)
    path = f"/api/entries/{entry['id']}"

    assert other_client.get(path).status_code == 403
    assert other_client.put(path, json={"title": "mine now"}).status_code == 403
    assert other_client.patch(f"{path}/star").status_code == 403
    assert other_client.patch(f"{path}/clarity", json={"rating": 1}).status_code == 403
    assert other_client.delete(path).status_code == 403

    still_there = user_client.get(path).json()
    assert still_there["title"] == entry["title"]
    assert still_there["isStarred"] is False
    assert other_client.get("/api/entries").json()["results"] == []


def test_missing_entry_is_404(user_client):
    assert user_client.get("/api/entries/9999").status_code == 404
    assert user_client.put("/api/entries/9999", json={"title": "x"}).status_code == 404
    assert user_client.delete("/api/entries/9999").status_code == 404


def test_content_update_replaces_tags(user_client):
    entry = create(user_client)

    updated = user_client.put(f"/api/entries/{entry['id']}", json={"content": SAD}).json()

    assert "Happy" not in emotion_names(updated)
    assert "Sad" in emotion_names(updated)
    assert "Family" in theme_names(updated)
    assert not {e["id"] for e in entry["emotions"]} & {e["id"] for e in updated["emotions"]}
    assert not {t["id"] for t in entry["themes"]} & {t["id"] for t in updated["themes"]}
    fetched = user_client.get(f"/api/entries/{entry['id']}").json()
    assert fetched["emotions"] == updated["emotions"]
    assert fetched["themes"] == updated["themes"]


def test_title_update_keeps_tags(user_client):
    entry = create(user_client)

    updated = user_client.put(
        f"/api/entries/{entry['id']}",
        json={"title": "Renamed", "isStarred": True, "clarityRating": 3},
    ).json()

    assert updated["title"] == "Renamed"
    assert updated["isStarred"] is True
    assert updated["clarityRating"] == 3
    assert updated["emotions"] == entry["emotions"]
    assert updated["themes"] == entry["themes"]


def test_star_toggle(user_client):
    entry = create(user_client)
    path = f"/api/entries/{entry['id']}/star"

    starred = user_client.patch(path).json()
    assert starred["isStarred"] is True
    assert [e["id"] for e in user_client.get("/api/entries/starred").json()] == [entry["id"]]

    unstarred = user_client.patch(path).json()
    assert unstarred["isStarred"] is False
    assert user_client.get("/api/entries/starred").json() == []


def test_clarity_rating(user_client):
    entry = create(user_client)
    path = f"/api/entries/{entry['id']}/clarity"

    assert user_client.patch(path, json={"rating": 4}).json()["clarityRating"] == 4
    assert user_client.patch(path, json={"rating": 6}).status_code == 400
    assert user_client.patch(path, json={"rating": -1}).status_code == 400
    assert user_client.get(f"/api/entries/{entry['id']}").json()["clarityRating"] == 4


def test_invalid_input_is_400(user_client):
    assert user_client.post("/api/entries", json={"title": "", "content": "x"}).status_code == 400
    assert user_client.post("/api/entries", json={"title": "t"}).status_code == 400
    assert user_client.get("/api/entries/not-a-number").status_code == 400


def test_blank_title_is_rejected(user_client):
    entry = create(user_client, title="  Padded  ")
    assert entry["title"] == "Padded"

    assert user_client.post("/api/entries", json={"title": "   ", "content": HAPPY}).status_code == 400
    assert user_client.put(f"/api/entries/{entry['id']}", json={"title": "  "}).status_code == 400
    assert user_client.get(f"/api/entries/{entry['id']}").json()["title"] == "Padded"


def test_delete(user_client):
    entry = create(user_client)
    path = f"/api/entries/{entry['id']}"

    response = user_client.delete(path)

    assert response.status_code == 204
    assert user_client.get(path).status_code == 404
    assert user_client.get("/api/entries").json()["results"] == []


def test_premium_insights_require_subscription(user_client):
    response = user_client.get("/api/insights")

    assert response.status_code == 403
    assert response.json()["detail"] == "Subscription required"
