import asyncio

from core.domain.enums.deployment_enums import DeploymentState, PaymentStatus, RegistrationStatus, TonNetwork
from core.services.addresses import format_for_network
from core.use_cases.deployment_confirmation_usecase import DeploymentConfirmationUseCase
from core.use_cases.deployment_registration_usecase import DeploymentRegistrationUseCase
from core.use_cases.deployment_transaction_usecase import DeploymentTransactionUseCase
from core.use_cases.payment_verification_usecase import PaymentVerificationUseCase
from fakes import CHILD, USER, purchase


def test_channel_lifecycle_from_registration_to_first_purchase(gate, chain, outcomes):
    chain.accept_delay = 6
    chain.visibility_delay = 5
    user = format_for_network(USER, TonNetwork.TESTNET, bounceable=False)

    registration = asyncio.run(
        DeploymentRegistrationUseCase.from_context(gate).register_deployment(
            channel_id=42,
            user_wallet=user,
            price_ton="10",
        )
    )

    assert registration.status == RegistrationStatus.CONFIRMED
    assert registration.accepted_after_sec <= 10
    assert registration.visible_after_sec <= 15

    request = DeploymentTransactionUseCase.from_context(gate).build_request()
    message = request.messages[0]
    assert message.address.startswith("kQ")
    assert message.amount == "700000000"

    # the user signs and sends "deploy"; the factory allocates, then activates the child
    chain.simulate_user_deploy(42, child=CHILD, allocate_after=4, active_after=9)
    confirmation = asyncio.run(DeploymentConfirmationUseCase.from_context(gate).poll_deployment_confirmation(channel_id=42))

    assert confirmation.state == DeploymentState.ACTIVE
    assert confirmation.elapsed_sec <= 20
    assert outcomes.get(channel_id=42).state == DeploymentState.ACTIVE

    chain.add_transaction(CHILD, purchase(1, 9_950_000_000, source=USER))
    payment = asyncio.run(
        PaymentVerificationUseCase.from_context(gate).verify_payment(
            contract_address=confirmation.contract_address,
            expected_amount="10",
        )
    )

    assert payment.status == PaymentStatus.FOUND
    assert not payment.overpaid
    assert payment.from_address == format_for_network(USER, TonNetwork.TESTNET, bounceable=True)
