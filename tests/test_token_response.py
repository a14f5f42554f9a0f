from meta_connect.services.token_response import join_permissions, normalize_token_response


def test_current_flat_shape():
    token = normalize_token_response({"access_token": "T", "user_id": 17841400000, "permissions": ["a", " b "]})

    assert token.access_token == "T"
    assert token.user_id == "17841400000"
    assert token.permissions == "a,b"
    assert token.complete


def test_legacy_data_array_shape():
    token = normalize_token_response(
        {"data": [{"access_token": "T", "user_id": "U", "permissions": "instagram_business_basic,x"}]}
    )

    assert token.access_token == "T"
    assert token.user_id == "U"
    assert token.permissions == "instagram_business_basic,x"


def test_missing_user_id_is_incomplete():
    token = normalize_token_response({"access_token": "T"})
    assert token is not None
    assert not token.complete


def test_unknown_shapes():
    assert normalize_token_response({}) is None
    assert normalize_token_response({"data": []}) is None
    assert normalize_token_response({"error_type": "OAuthException"}) is None


def test_join_permissions():
    assert join_permissions(None) is None
    assert join_permissions(["a", "", "b"]) == "a,b"
    assert join_permissions("a,b") == "a,b"
