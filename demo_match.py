#!/usr/bin/env python3
"""
Demonstration of the two-party match protocol.
Both parties pick Friendship or Love; both learn Love only if both picked Love.
"""

import argparse
import asyncio
import logging

from MATCH import Choice, MatchParams, MatchProtocol


def expected_outcome(host_choice: Choice, joiner_choice: Choice) -> Choice:
    both_love = host_choice == Choice.LOVE and joiner_choice == Choice.LOVE
    return Choice.LOVE if both_love else Choice.FRIENDSHIP


def demonstrate_match(host_choice: Choice, joiner_choice: Choice, params: MatchParams) -> bool:
    """
    Run one match between an in-process host and joiner and narrate it.
    """
    print("=" * 70)
    print(f"MATCH: host picks {host_choice.value}, joiner picks {joiner_choice.value}")
    print("=" * 70)
    print()

    print("Protocol steps:")
    print("1. Both parties commit to a random mask")
    print("2. Host offers two secrets via commutative-encryption OT:")
    print("   Friendship secret carries 0 ⊕ host_mask")
    print("   Love secret carries host_love ⊕ host_mask")
    print("3. Joiner opens the secret matching its own choice")
    print("4. Joiner sends payload ⊕ joiner_mask")
    print("5. Masks are revealed together; both compute the AND")
    print()

    protocol = MatchProtocol(params)
    host_outcome, joiner_outcome = asyncio.run(protocol.execute(host_choice, joiner_choice))
    expected = expected_outcome(host_choice, joiner_choice)

    print(f"Host sees:   {host_outcome.value}")
    print(f"Joiner sees: {joiner_outcome.value}")
    print(f"Expected:    {expected.value}")

    success = host_outcome == joiner_outcome == expected
    print("✅ Correct!" if success else "❌ Error!")
    print()
    return success


def main():
    parser = argparse.ArgumentParser(description="Run the two-party match protocol")
    choices = [c.value for c in Choice]
    parser.add_argument("--host", choices=choices, help="Host's choice (default: all pairs)")
    parser.add_argument("--joiner", choices=choices, help="Joiner's choice (default: all pairs)")
    parser.add_argument("--mask-size", type=int, default=16, help="Bytes of randomness per mask")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show protocol transitions")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    params = MatchParams(mask_size=args.mask_size)
    host_choices = [Choice(args.host)] if args.host else list(Choice)
    joiner_choices = [Choice(args.joiner)] if args.joiner else list(Choice)

    success_count = 0
    total = 0
    for host_choice in host_choices:
        for joiner_choice in joiner_choices:
            total += 1
            if demonstrate_match(host_choice, joiner_choice, params):
                success_count += 1

    print(f"{'SUMMARY':=^70}")
    print(f"Successful matches: {success_count}/{total}")


if __name__ == "__main__":
    main()
