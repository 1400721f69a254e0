import pytest

from conftest import COUPLE_BLOCK_CARD, FORMAL_CARD, PARTY_FLYER, WEDDING_CARD
from kairos_agent.classifier import classify, find_couple_block, is_single_name_line
from kairos_agent.models import InvitationKind


@pytest.mark.parametrize(
    "text, expected",
    [
        (WEDDING_CARD, InvitationKind.WEDDING),
        (COUPLE_BLOCK_CARD, InvitationKind.WEDDING),
        ("Mr and Mrs Smith request the honour of your presence", InvitationKind.WEDDING),
        (FORMAL_CARD, InvitationKind.FORMAL),
        ("You have an invitation to the annual awards", InvitationKind.FORMAL),
        (PARTY_FLYER, InvitationKind.GENERIC),
        ("Team lunch\nFriday 12:30", InvitationKind.GENERIC),
    ],
)
def test_classify(text, expected):
    assert classify(text) is expected


def test_keyword_split_across_lines_still_matches():
    assert classify("THE MARRIAGE\nOF\nJOHN AND JANE") is InvitationKind.WEDDING


def test_wedding_markers_beat_formal_ones():
    # "request the pleasure" is listed for both kinds
    assert classify("We request the pleasure of your company") is InvitationKind.WEDDING


@pytest.mark.parametrize(
    "line, expected",
    [
        ("ALICE", True),
        ("TO", False),
        ("THE", False),
        ("Alice", False),
        ("ALICE SMITH", False),
        ("AB", False),
    ],
)
def test_is_single_name_line(line, expected):
    assert is_single_name_line(line) is expected


def test_find_couple_block():
    assert find_couple_block(["ALICE", "TO", "ANTON", "FLEUR DU CAP"]) == ("ALICE", "ANTON")
    assert find_couple_block(["ALICE", "AND", "ANTON"]) is None
