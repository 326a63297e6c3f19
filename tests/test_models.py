import pytest
from pydantic import ValidationError

from tidal_cli.media import FileIntegrityChecker
from tidal_cli.models.session import Credential, DeviceAuthorization, SessionIdentity
from tidal_cli.models.stats import CacheStats
from tidal_cli.models.track import Track


def test_identity_accepts_camel_case_and_numeric_ids():
    identity = SessionIdentity.from_response(
        {"sessionId": "s-1", "countryCode": "US", "userId": 1234, "channelId": 1}
    )

    assert identity == SessionIdentity(session_id="s-1", country_code="US", user_id="1234")


def test_identity_requires_country_code():
    with pytest.raises(ValidationError):
        SessionIdentity.from_response({"sessionId": "s-1", "userId": 1})


@pytest.mark.parametrize(
    "uri, expected",
    [
        ("link.tidal.com/ABCDE", "https://link.tidal.com/ABCDE"),
        ("https://link.tidal.com/ABCDE", "https://link.tidal.com/ABCDE"),
    ],
)
def test_verification_url_always_has_a_scheme(uri, expected):
    grant = DeviceAuthorization.model_validate(
        {
            "deviceCode": "d",
            "userCode": "ABCDE",
            "verificationUriComplete": uri,
            "expiresIn": 300,
            "interval": 2,
        }
    )

    assert grant.verification_url == expected
    assert grant.interval == 2


def test_credential_is_immutable():
    credential = Credential(access_token="a", refresh_token="r")

    assert credential.authorization_header == "Bearer a"
    with pytest.raises(ValidationError):
        credential.access_token = "b"


def test_track_falls_back_to_first_listed_artist():
    descriptor = {
        "id": 7,
        "title": "Song",
        "duration": 100,
        "artists": [{"name": "Listed", "type": "MAIN"}],
    }

    track = Track.from_descriptor(descriptor, {"trackId": 7, "urls": ["https://x/7"]})

    assert track.artist == "Listed"
    assert track.album == "Unknown Album"
    assert track.id == "7"


def test_cache_stats_usage_ratio():
    assert CacheStats(entries=2, total_size=25, capacity=100).usage_ratio == 0.25


@pytest.mark.parametrize("data", [b"", b"garbage that is not an ogg stream"])
def test_opus_check_rejects_non_ogg_data(data):
    assert FileIntegrityChecker.check_opus(data, label="test") is False


def test_track_tolerates_null_artist_and_duration():
    descriptor = {
        "id": 8,
        "title": "Untitled",
        "artist": None,
        "duration": None,
        "artists": [{"name": "Fallback", "type": "MAIN"}],
        "album": None,
    }

    track = Track.from_descriptor(descriptor, {"trackId": 8, "urls": ["https://x/8"]})

    assert track.artist == "Fallback"
    assert track.duration == 0
    assert track.album == "Unknown Album"
