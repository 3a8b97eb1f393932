def test_search_children(client):
    response = client.get("/children?q=mia")

    assert response.status_code == 200
    assert [child["id"] for child in response.json] == ["child-1"]
    assert response.json[0]["dob"] == "2019-02-10"


def test_search_children_short_term(client, mock_supabase):
    response = client.get("/children?q=m")

    assert response.status_code == 200
    assert response.json == []
    assert mock_supabase.queries("children") == 0


def test_get_child(client):
    response = client.get("/children/child-2")

    assert response.status_code == 200
    assert response.json["first_name"] == "Noah"


def test_get_unknown_child(client):
    response = client.get("/children/nope")

    assert response.status_code == 404
    assert response.json["error"] == "Child nope not found."


def test_create_child(client):
    response = client.post(
        "/children", json={"first_name": "Ivy", "last_name": "Tran", "dob": "2020-03-04", "allergies": "Sesame"}
    )

    assert response.status_code == 201
    assert response.json["first_name"] == "Ivy"
    assert response.json["allergies"] == "Sesame"
    assert response.json["active"] is True


def test_create_child_invalid(client):
    response = client.post("/children", json={"first_name": "Ivy", "last_name": "Tran"})

    assert response.status_code == 400
    assert response.json["error"][0]["loc"] == ["dob"]
    assert "Date of birth is required." in response.json["error"][0]["msg"]


def test_create_child_bad_date(client):
    response = client.post("/children", json={"first_name": "Ivy", "last_name": "Tran", "dob": "someday"})

    assert response.status_code == 400


def test_update_child(client):
    response = client.patch("/children/child-1", json={"medical_notes": "Inhaler in bag"})

    assert response.status_code == 200
    assert response.json["medical_notes"] == "Inhaler in bag"
    assert response.json["allergies"] == "Peanuts, Dairy"


def test_update_unknown_child(client):
    response = client.patch("/children/nope", json={"notes": "hello"})

    assert response.status_code == 404


def test_deactivate_child(client):
    response = client.delete("/children/child-1")

    assert response.status_code == 200
    assert response.json["active"] is False
    assert client.get("/children?q=mia").json == []


def test_list_child_guardians(client):
    response = client.get("/children/child-2/guardians")

    assert response.status_code == 200
    assert [guardian["id"] for guardian in response.json] == ["guardian-2"]
    assert response.json[0]["relationship"] == "Father"


def test_link_and_unlink_guardian(client):
    response = client.post("/children/child-3/guardians", json={"guardian_id": "guardian-1", "relationship": "Grandma"})

    assert response.status_code == 200
    assert response.json["active"] is True

    guardians = client.get("/children/child-3/guardians").json
    assert [(guardian["id"], guardian["relationship"]) for guardian in guardians] == [("guardian-1", "Grandma")]

    response = client.delete("/children/child-3/guardians/guardian-1")
    assert response.status_code == 200
    assert response.json["active"] is False
    assert client.get("/children/child-3/guardians").json == []


def test_link_guardian_to_unknown_child(client):
    response = client.post("/children/nope/guardians", json={"guardian_id": "guardian-1"})

    assert response.status_code == 404


def test_link_guardian_missing_guardian_id(client):
    response = client.post("/children/child-3/guardians", json={"relationship": "Grandma"})

    assert response.status_code == 400


def test_unlink_unknown_pair(client):
    response = client.delete("/children/child-3/guardians/guardian-2")

    assert response.status_code == 404
