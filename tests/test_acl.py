import json

from matrixsdk.acl import ACL, PermissionModel, default_acl, new_acl


def test_new_acl_sets_permission_model():
    acl = new_acl(1, 1.0)
    assert acl.pm.accept_value == 1
    assert acl.pm.rule == 1
    assert acl.aks_weight == {}


def test_add_ak():
    acl = new_acl(1, 1.0)
    acl.add_ak("a", 1.0)
    assert len(acl.aks_weight) == 1
    assert acl.aks_weight["a"] == 1.0


def test_default_acl():
    acl = default_acl("bob")
    assert acl.aks_weight["bob"] == 1.0
    assert acl.pm == PermissionModel(rule=1, accept_value=1.0)


def test_add_ak_on_empty_acl():
    acl = ACL()
    acl.add_ak("aa", 1.0)
    assert acl.aks_weight["aa"] == 1.0


def test_add_ak_replaces_weight():
    acl = new_acl(1, 1.0)
    acl.add_ak("a", 0.5)
    acl.add_ak("a", 0.7)
    assert acl.aks_weight == {"a": 0.7}


def test_default_acl_json_form():
    assert default_acl("bob").to_json() == (
        '{"pm":{"rule":1,"acceptValue":1},"aksWeight":{"bob":1}}'
    )


def test_empty_acl_json_has_null_weights():
    decoded = json.loads(ACL().to_json())
    assert decoded["aksWeight"] is None
    assert decoded["pm"] == {"rule": 0, "acceptValue": 0}


def test_json_round_trip_keeps_values():
    acl = new_acl(2, 0.6)
    acl.add_ak("zed", 0.3)
    acl.add_ak("amy", 0.5)
    decoded = json.loads(acl.to_json())
    assert decoded["pm"]["rule"] == 2
    assert decoded["pm"]["acceptValue"] == 0.6
    assert decoded["aksWeight"] == {"amy": 0.5, "zed": 0.3}
    assert list(decoded["aksWeight"]) == sorted(decoded["aksWeight"])