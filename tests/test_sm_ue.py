import threading

from upplane.sm_ue import UeData, Ues

SUPI = "imsi-208930000000001"


def test_unknown_ue_defaults():
    ues = Ues()
    assert not ues.ue_exists(SUPI)
    assert ues.ue_data(SUPI) == UeData()
    assert ues.subscription_id(SUPI) == ""
    assert ues.pdu_session_count(SUPI) == UeData().pdu_session_count
    assert not ues.is_last_pdu_session(SUPI)


def test_lookups_do_not_create_entries():
    ues = Ues()
    ues.subscription_id(SUPI)
    ues.ue_data(SUPI)
    ues.decrement_pdu_session_count(SUPI)
    assert not ues.ue_exists(SUPI)


def test_increment_creates_ue_and_is_last():
    ues = Ues()
    ues.increment_pdu_session_count(SUPI)
    assert ues.ue_exists(SUPI)
    assert ues.is_last_pdu_session(SUPI)


def test_increment_and_decrement_round_trip():
    ues = Ues()
    ues.increment_pdu_session_count(SUPI)
    ues.increment_pdu_session_count(SUPI)
    assert not ues.is_last_pdu_session(SUPI)
    ues.decrement_pdu_session_count(SUPI)
    assert ues.is_last_pdu_session(SUPI)


def test_decrement_never_below_zero():
    ues = Ues()
    ues.increment_pdu_session_count(SUPI)
    ues.decrement_pdu_session_count(SUPI)
    ues.decrement_pdu_session_count(SUPI)
    assert ues.pdu_session_count(SUPI) == UeData().pdu_session_count
    ues.increment_pdu_session_count(SUPI)
    assert ues.is_last_pdu_session(SUPI)


def test_subscription_id_round_trip():
    ues = Ues()
    ues.set_subscription_id(SUPI, "sub-1")
    assert ues.subscription_id(SUPI) == "sub-1"
    assert ues.ue_data(SUPI) == UeData(pdu_session_count=0, sdm_subscription_id="sub-1")


def test_subscription_kept_with_sessions():
    ues = Ues()
    ues.set_subscription_id(SUPI, "sub-2")
    ues.increment_pdu_session_count(SUPI)
    data = ues.ue_data(SUPI)
    assert data.sdm_subscription_id == "sub-2"
    assert ues.is_last_pdu_session(SUPI)


def test_ue_data_is_a_copy():
    ues = Ues()
    ues.increment_pdu_session_count(SUPI)
    data = ues.ue_data(SUPI)
    data.pdu_session_count += 10
    assert ues.is_last_pdu_session(SUPI)


def test_delete_ue():
    ues = Ues()
    ues.set_subscription_id(SUPI, "sub-3")
    ues.delete_ue(SUPI)
    assert not ues.ue_exists(SUPI)
    assert ues.subscription_id(SUPI) == ""
    ues.delete_ue(SUPI)
    assert not ues.ue_exists(SUPI)


def test_concurrent_increments_are_counted():
    ues = Ues()
    per_thread = 200
    workers = 8

    def work():
        for _ in range(per_thread):
            ues.increment_pdu_session_count(SUPI)

    threads = [threading.Thread(target=work) for _ in range(workers)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert ues.pdu_session_count(SUPI) == per_thread * workers