"""Tests for the behavior transforms."""

from collections.abc import Callable

from frontline.conversation.models import TurnContext
from frontline.policy.behavior import apply_behavior
from frontline.policy.models import BehaviorFlag
from frontline.policy.runtime import Policy


class TestAcknowledgment:
    def test_prefixes_ok(
        self, make_policy: Callable[..., Policy], make_turn: Callable[..., TurnContext]
    ) -> None:
        policy = make_policy(behavior=["ACK_OK"])

        text, applied = apply_behavior("We can send someone tomorrow.", policy, make_turn())

        assert text == "Ok, we can send someone tomorrow."
        assert applied == [BehaviorFlag.ACK_OK]

    def test_existing_acknowledgment_kept(
        self, make_policy: Callable[..., Policy], make_turn: Callable[..., TurnContext]
    ) -> None:
        policy = make_policy(behavior=["ACK_OK"])

        text, applied = apply_behavior("Sure, I can help.", policy, make_turn())

        assert text == "Sure, I can help."
        assert applied == []


class TestCompanyName:
    def test_first_turn_only(
        self, make_policy: Callable[..., Policy], make_turn: Callable[..., TurnContext]
    ) -> None:
        policy = make_policy(behavior=["USE_COMPANY_NAME"], company_name="Acme Heating")

        first, _ = apply_behavior("How can I help?", policy, make_turn(turn_number=1))
        later, _ = apply_behavior("How can I help?", policy, make_turn(turn_number=2))

        assert first == "Thanks for calling Acme Heating! How can I help?"
        assert later == "How can I help?"

    def test_company_from_variables(
        self, make_policy: Callable[..., Policy], make_turn: Callable[..., TurnContext]
    ) -> None:
        policy = make_policy(behavior=["USE_COMPANY_NAME"], variables={"company_name": "Acme"})

        text, _ = apply_behavior("Hello.", policy, make_turn())

        assert text == "Thanks for calling Acme! Hello."


class TestConfirmEntities:
    def test_appends_confirmation(
        self, make_policy: Callable[..., Policy], make_turn: Callable[..., TurnContext]
    ) -> None:
        policy = make_policy(behavior=["CONFIRM_ENTITIES"])
        turn = make_turn(entities={"name": "Dana", "street_address": "12 Elm St"})

        text, _ = apply_behavior("We'll be there at noon.", policy, turn)

        assert text == (
            "We'll be there at noon. Just to confirm, I have your name as Dana, "
            "your street address as 12 Elm St."
        )


class TestContractions:
    def test_expansion_preserves_case(
        self, make_policy: Callable[..., Policy], make_turn: Callable[..., TurnContext]
    ) -> None:
        policy = make_policy(behavior=["POLITE_PROFESSIONAL"])

        text, _ = apply_behavior("I'm sure we can't miss it. Don't worry.", policy, make_turn())

        assert text == "I am sure we cannot miss it. Do not worry."


class TestComposition:
    def test_transforms_compose_in_fixed_order(
        self, make_policy: Callable[..., Policy], make_turn: Callable[..., TurnContext]
    ) -> None:
        policy = make_policy(
            behavior=["POLITE_PROFESSIONAL", "USE_COMPANY_NAME", "ACK_OK"],
            company_name="Acme",
        )

        text, applied = apply_behavior("we'll send a tech.", policy, make_turn())

        assert text == "Thanks for calling Acme! Ok, we will send a tech."
        assert applied == [
            BehaviorFlag.ACK_OK,
            BehaviorFlag.USE_COMPANY_NAME,
            BehaviorFlag.POLITE_PROFESSIONAL,
        ]
