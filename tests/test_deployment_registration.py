import asyncio

import pytest

from core.domain.enums.deployment_enums import DeploymentState, RegistrationStatus, TonNetwork
from core.services.addresses import format_for_network
from core.services.exceptions import BroadcastError, MalformedAddressNetworkError, UnauthorizedDeployerError
from core.use_cases.deployment_registration_usecase import DeploymentRegistrationUseCase
from fakes import OWNER, USER, make_address


@pytest.fixture
def use_case(gate):
    return DeploymentRegistrationUseCase.from_context(gate)


def _register(use_case, channel_id=42, user=USER, price="10"):
    return asyncio.run(use_case.register_deployment(channel_id=channel_id, user_wallet=user, price_ton=price))


def _reads_after_send(chain):
    first_send = next(i for i, (_t, name) in enumerate(chain.trace) if name == "sent")
    return [t for t, name in chain.trace[first_send:] if name == "get:getRegisteredDeployment"]


def test_register_confirms_after_acceptance_then_visibility(use_case, chain, outcomes):
    res = _register(use_case)

    assert res.status == RegistrationStatus.CONFIRMED
    assert res.confirmed
    assert res.registration.channel_id == 42
    assert res.registration.price_nano == 10_000_000_000
    assert res.submitted_seqno == 0
    assert res.wallet_explorer_url.startswith("https://testnet.tonviewer.com/")

    accepted_at = chain.event_times("accepted")[0]
    reads = _reads_after_send(chain)
    assert reads and min(reads) >= accepted_at
    assert outcomes.get(channel_id=42).state == DeploymentState.AWAITING_USER_PAYMENT


def test_register_accepts_friendly_user_wallet(use_case, chain):
    friendly = format_for_network(USER, TonNetwork.TESTNET, bounceable=False)

    res = _register(use_case, user=friendly)

    assert res.confirmed
    assert res.user_wallet == USER
    assert USER in chain.registrations


def test_register_rejects_mainnet_user_wallet_on_testnet(use_case, chain):
    mainnet = format_for_network(USER, TonNetwork.MAINNET)

    with pytest.raises(MalformedAddressNetworkError):
        _register(use_case, user=mainnet)
    assert chain.sent == []


def test_register_validates_input_before_sending(use_case, chain):
    with pytest.raises(ValueError):
        _register(use_case, price="0")
    with pytest.raises(ValueError):
        _register(use_case, channel_id=2**63)
    assert chain.sent == []


def test_reregistration_overwrites_previous_record(use_case, chain):
    first = _register(use_case, price="10")
    second = _register(use_case, price="12")

    assert first.confirmed and second.confirmed
    assert second.submitted_seqno == first.submitted_seqno + 1
    assert chain.registrations[USER][1] == 12_000_000_000


def test_registering_same_params_twice_waits_for_the_new_record(use_case, chain, clock):
    first = _register(use_case)
    clock.t += 1000
    second = _register(use_case)

    assert first.confirmed and second.confirmed
    assert second.previous_registered_at == first.registration.registered_at
    assert second.registration.registered_at > first.registration.registered_at
    assert second.visible_after_sec > 0
    assert chain.registrations[USER] == (42, 10_000_000_000, second.registration.registered_at)


def test_stale_matching_record_is_not_taken_as_visibility(use_case, chain):
    _register(use_case)
    chain.visibility_delay = 10_000

    res = _register(use_case)

    assert res.status == RegistrationStatus.VISIBILITY_TIMEOUT
    assert res.registration is None


def test_visibility_timeout_is_reported_exactly_at_bound(use_case, chain, clock, outcomes):
    chain.visibility_delay = 10_000

    res = _register(use_case)

    assert res.status == RegistrationStatus.VISIBILITY_TIMEOUT
    assert res.registration is None
    accepted_after = res.accepted_after_sec
    assert clock.now() == pytest.approx(accepted_after + use_case.visibility_timeout)
    assert outcomes.get(channel_id=42).reason == "VISIBILITY_TIMEOUT"


def test_visibility_timeout_can_be_repolled_without_resubmitting(use_case, chain):
    chain.visibility_delay = 40

    res = _register(use_case)
    assert res.status == RegistrationStatus.VISIBILITY_TIMEOUT
    sent_before = len(chain.sent)

    again = asyncio.run(
        use_case.await_visibility(
            channel_id=42,
            user_wallet=USER,
            price_nano=res.price_nano,
            newer_than=res.previous_registered_at,
        )
    )

    assert again.satisfied
    assert len(chain.sent) == sent_before


def test_acceptance_timeout_never_reads_the_factory(use_case, chain, clock):
    chain.drop_broadcasts = True

    res = _register(use_case)

    assert res.status == RegistrationStatus.ACCEPTANCE_TIMEOUT
    assert _reads_after_send(chain) == []
    assert clock.now() == pytest.approx(use_case.acceptance_timeout)


def test_unauthorized_wallet_does_not_submit(use_case, chain):
    chain.deployer = make_address(0xBAD)

    with pytest.raises(UnauthorizedDeployerError):
        _register(use_case)
    assert chain.sent == []


def test_owner_may_register_too(gate, chain):
    chain.owner, chain.deployer = chain.deployer, OWNER

    res = _register(DeploymentRegistrationUseCase.from_context(gate))

    assert res.confirmed


def test_broadcast_failure_marks_outcome_failed(use_case, chain, outcomes):
    chain.fail_broadcasts = True

    with pytest.raises(BroadcastError):
        _register(use_case)

    outcome = outcomes.get(channel_id=42)
    assert outcome.state == DeploymentState.FAILED
    assert chain.send_attempts == 1
