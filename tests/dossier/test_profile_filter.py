from hr_backoffice.dossier.filter import ProfileFieldFilter

from fakes import make_actor

PROFILE = {
    "user_id": 2,
    "personal": {"first_name": "Asha"},
    "compensation": {"ctc": 1200000},
    "identity": {"pan": "ABCDE1234F"},
    "family": {"spouse": "Ravi"},
}


def test_colleague_does_not_see_sensitive_sections():
    out = ProfileFieldFilter().filter(PROFILE, make_actor(3, keys={"dossier.view"}), is_self=False)
    assert "personal" in out
    for section in ("compensation", "identity", "family"):
        assert section not in out


def test_owner_sees_everything():
    out = ProfileFieldFilter().filter(PROFILE, make_actor(2), is_self=True)
    assert out == PROFILE


def test_sensitive_permission_and_system_admin():
    f = ProfileFieldFilter()
    assert f.filter(PROFILE, make_actor(3, keys={"dossier.view.sensitive"}), is_self=False)["compensation"]
    assert f.filter(PROFILE, make_actor(3, system_admin=True), is_self=False)["identity"]


def test_input_is_not_mutated():
    ProfileFieldFilter().filter(PROFILE, make_actor(3), is_self=False)
    assert "family" in PROFILE
