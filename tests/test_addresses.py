"""Address book"""

ADDRESS = {
    "full_name": "Ada Lovelace",
    "phone_number": "+22990000000",
    "area": "Haie Vive",
    "city": "Cotonou",
    "state": "Littoral",
}


def create(client, user_id, headers, **fields):
    return client.post(f"/api/addresses/{user_id}", json=dict(ADDRESS, **fields), headers=headers)


def test_create_with_defaults(client, customer):
    user, headers = customer
    response = create(client, user.id, headers)
    assert response.status_code == 201
    body = response.json()
    assert body["country"] == "Unknown"
    assert body["is_default"] is False


def test_missing_required_field_rejected(client, customer):
    user, headers = customer
    payload = dict(ADDRESS)
    del payload["city"]
    response = client.post(f"/api/addresses/{user.id}", json=payload, headers=headers)
    assert response.status_code == 400


def test_single_default_per_user(client, customer):
    user, headers = customer
    first = create(client, user.id, headers, is_default=True).json()
    second = create(client, user.id, headers, area="Akpakpa", is_default=True).json()

    listed = client.get(f"/api/addresses/{user.id}", headers=headers).json()
    assert [address["id"] for address in listed] == [second["id"], first["id"]]
    assert {address["id"]: address["is_default"] for address in listed} == {
        first["id"]: False,
        second["id"]: True,
    }

    response = client.put(
        f"/api/addresses/{user.id}/{first['id']}",
        json={"is_default": True},
        headers=headers,
    )
    assert response.status_code == 200
    defaults = [a["id"] for a in client.get(f"/api/addresses/{user.id}", headers=headers).json() if a["is_default"]]
    assert defaults == [first["id"]]


def test_default_is_per_user(client, customer, make_user):
    user, headers = customer
    other, other_headers = make_user(email="eve@example.com")
    mine = create(client, user.id, headers, is_default=True).json()
    create(client, other.id, other_headers, is_default=True)

    assert client.get(f"/api/addresses/{user.id}", headers=headers).json()[0]["id"] == mine["id"]
    assert client.get(f"/api/addresses/{user.id}", headers=headers).json()[0]["is_default"] is True


def test_cannot_touch_someone_elses_address(client, customer, make_user, admin):
    user, headers = customer
    other, other_headers = make_user(email="eve@example.com")
    address = create(client, user.id, headers).json()

    assert client.get(f"/api/addresses/{user.id}", headers=other_headers).status_code == 403
    assert client.put(
        f"/api/addresses/{other.id}/{address['id']}", json={"city": "Parakou"}, headers=other_headers
    ).status_code == 404
    assert client.delete(f"/api/addresses/{other.id}/{address['id']}", headers=other_headers).status_code == 404


def test_delete_address(client, customer):
    user, headers = customer
    address = create(client, user.id, headers).json()
    assert client.delete(f"/api/addresses/{user.id}/{address['id']}", headers=headers).status_code == 200
    assert client.get(f"/api/addresses/{user.id}", headers=headers).json() == []
