# Custom hypothesis strategies

import string

from hypothesis import strategies as st

from squadmatch.participants import Participant


def st_names():
    return st.text(
        alphabet=list(string.ascii_letters + string.digits + "_-"),
        min_size=1,
        max_size=16
    )


@st.composite
def st_record_counts(draw):
    """Strategy for win or loss counts as they may appear in a roster"""
    return draw(st.one_of(
        st.none(),
        st.just(0),
        st.integers(min_value=1, max_value=10_000),
    ))


@st.composite
def st_participants(draw, name=None):
    """Strategy for unscored Participant objects"""
    return Participant(
        draw(st_names()) if name is None else name,
        wins=draw(st_record_counts()),
        losses=draw(st_record_counts()),
    )


@st.composite
def st_participant_lists(draw, min_size=0, max_size=20):
    """Strategy for lists of participants with unique names"""
    names = draw(st.lists(
        st_names(), min_size=min_size, max_size=max_size, unique=True
    ))
    return [draw(st_participants(name=name)) for name in names]
