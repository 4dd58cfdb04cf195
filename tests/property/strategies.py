"""
Hypothesis Strategies for Property-Based Testing

Custom strategies for generating share records, policies and codes.
"""

import string
from datetime import datetime, timedelta, timezone

from hypothesis import strategies as st
from hypothesis.strategies import SearchStrategy

from codedrop.domain.sharing import PasswordScheme, SharePolicy, ShareRecord

CODE_ALPHABET = string.ascii_letters + string.digits + "-_"


# =============================================================================
# Primitive Strategies
# =============================================================================

def share_codes() -> SearchStrategy[str]:
    """Codes in the URL-safe alphabet share codes are drawn from."""
    return st.text(alphabet=CODE_ALPHABET, min_size=1, max_size=64)


def invalid_share_codes() -> SearchStrategy[str]:
    """Strings containing at least one character outside the code alphabet."""
    bad = st.sampled_from(list("/?#%&=+. \t\n") + ["é", "\x00"])
    return st.tuples(
        st.text(alphabet=CODE_ALPHABET, max_size=10), bad, st.text(alphabet=CODE_ALPHABET, max_size=10)
    ).map("".join)


def utc_datetimes() -> SearchStrategy[datetime]:
    return st.datetimes(
        min_value=datetime(2000, 1, 1),
        max_value=datetime(2100, 1, 1),
        timezones=st.just(timezone.utc),
    )


def stored_names() -> SearchStrategy[str]:
    token = st.text(alphabet="0123456789abcdef", min_size=8, max_size=32)
    filename = st.text(
        alphabet=string.ascii_letters + string.digits + "._- ", min_size=1, max_size=40
    ).filter(lambda name: name.strip(". "))
    return st.builds(lambda t, f: f"{t}/{f}", token, filename)


def passwords() -> SearchStrategy[str]:
    return st.text(min_size=1, max_size=32)


# =============================================================================
# Domain Object Strategies
# =============================================================================

@st.composite
def share_records(draw) -> ShareRecord:
    """Records in any reachable state of their lifecycle."""
    max_downloads = draw(st.none() | st.integers(min_value=1, max_value=1000))
    if max_downloads is None:
        download_count = draw(st.integers(min_value=0, max_value=1000))
    else:
        download_count = draw(st.integers(min_value=0, max_value=max_downloads - 1))

    has_password = draw(st.booleans())
    flagged = draw(st.booleans())

    return ShareRecord(
        code=draw(share_codes()),
        stored_name=draw(stored_names()),
        display_name=draw(st.none() | st.text(min_size=1, max_size=40)),
        password_secret=draw(passwords()) if has_password else None,
        password_scheme=PasswordScheme.PLAINTEXT.value if has_password else None,
        expires_at=draw(st.none() | utc_datetimes()),
        max_downloads=max_downloads,
        download_count=download_count,
        created_at=draw(utc_datetimes()),
        threat_flagged=flagged,
        threat_detail=draw(st.none() | st.text(max_size=40)) if flagged else None,
    )


@st.composite
def share_policies(draw) -> SharePolicy:
    lifetime = draw(st.none() | st.integers(min_value=1, max_value=10**6).map(
        lambda minutes: timedelta(minutes=minutes)
    ))
    return SharePolicy(
        expires_in=lifetime,
        password=draw(st.none() | passwords()),
        max_downloads=draw(st.none() | st.integers(min_value=1, max_value=50)),
    )
