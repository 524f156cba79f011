import pytest

from vrng.state import CoordinatorState
from vrng.types import EMPTY_REQUEST, Request, RequestStatus

REQ = Request(RequestStatus.REQUESTED)
DONE = Request(RequestStatus.FULFILLED, 11)


def test_unknown_id_is_empty():
    assert CoordinatorState().get_request(1) is EMPTY_REQUEST


def test_checkpoint_commits_on_success():
    st = CoordinatorState()
    with st.checkpoint():
        st.put_request(1, REQ)
        assert st.depth() == 1
    assert st.depth() == 0
    assert st.get_request(1) == REQ


def test_checkpoint_reverts_on_error():
    st = CoordinatorState()
    st.put_request(1, REQ)
    with pytest.raises(KeyError):
        with st.checkpoint():
            st.put_request(1, DONE)
            st.put_request(2, REQ)
            st.set_provider("p")
            raise KeyError("x")
    assert st.get_request(1) == REQ
    assert st.get_request(2) is EMPTY_REQUEST
    assert st.provider is None


def test_inner_commit_folds_into_outer_revert():
    st = CoordinatorState()
    with pytest.raises(RuntimeError):
        with st.checkpoint():
            with st.checkpoint():
                st.put_request(1, REQ)
            assert st.get_request(1) == REQ
            raise RuntimeError
    assert len(st) == 0


def test_inner_revert_keeps_outer_writes():
    st = CoordinatorState()
    with st.checkpoint():
        st.put_request(1, REQ)
        with pytest.raises(RuntimeError):
            with st.checkpoint():
                st.put_request(1, DONE)
                raise RuntimeError
        assert st.get_request(1) == REQ
    assert st.get_request(1) == REQ


def test_provider_binding_is_journaled():
    st = CoordinatorState()
    with st.checkpoint():
        st.set_provider("a")
        assert st.provider == "a"
    with st.checkpoint():
        with st.checkpoint():
            st.set_provider(None)
        assert st.provider is None
    assert st.provider is None


def test_commit_or_revert_without_checkpoint():
    st = CoordinatorState()
    with pytest.raises(RuntimeError):
        st.commit()
    with pytest.raises(RuntimeError):
        st.revert()


def test_request_ids_filter_and_len():
    st = CoordinatorState()
    st.put_request(3, REQ)
    st.put_request(1, DONE)
    with st.checkpoint():
        st.put_request(2, REQ)
        assert st.request_ids() == [1, 2, 3]
        assert st.request_ids(RequestStatus.REQUESTED) == [2, 3]
        assert len(st) == 3
    assert st.request_ids(RequestStatus.FULFILLED) == [1]
