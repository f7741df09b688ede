from __future__ import annotations

from typing import List, Optional, Sequence

from .ledger import LedgerEntry
from .types import DrawResult, RankOutcome

# match count -> rank; five matches is split on the bonus number.
_RANK_BY_MATCHES = {6: 1, 4: 4, 3: 5}


def check_winning(purchased_numbers: Sequence[int], draw: DrawResult) -> RankOutcome:
    picked = set(purchased_numbers)
    match_count = len(picked & set(draw.numbers))
    bonus_matched = draw.bonus in picked

    if match_count == 5:
        rank = 2 if bonus_matched else 3
    else:
        rank = _RANK_BY_MATCHES.get(match_count, 0)
    return RankOutcome(rank=rank, match_count=match_count, bonus_matched=bonus_matched)


def _cannot_verify(user_id: str, reason: str) -> str:
    return f"({user_id}) ℹ️ <b>Cannot verify winnings</b>\n\n{reason}"


def format_winning_message(user_id: str, draw: DrawResult, ledger: Optional[LedgerEntry]) -> str:
    if ledger is None:
        return _cannot_verify(user_id, "No saved purchase history.")
    if ledger.round != draw.round:
        return _cannot_verify(
            user_id,
            f"Purchased round ({ledger.round}) differs from the drawn round ({draw.round}).",
        )
    purchase = ledger.users.get(user_id)
    if purchase is None:
        return _cannot_verify(user_id, f"No purchase recorded for round {draw.round}.")
    if purchase.success and not purchase.games:
        return _cannot_verify(user_id, f"Round {draw.round} was purchased but its numbers could not be read.")
    if not purchase.success:
        return _cannot_verify(user_id, f"The purchase for round {draw.round} failed.")

    winning = set(draw.numbers)
    lines: List[str] = [
        f"({user_id}) 🎰 <b>Lotto round {draw.round} results</b>",
        "",
        f"Draw date: {draw.draw_date}",
        "Winning numbers: " + ", ".join(f"<b>{number:02d}</b>" for number in draw.numbers),
        f"Bonus: <b>{draw.bonus:02d}</b>",
        "",
        "━━━━━━━━━━━━━━━━━━━━",
        "",
    ]

    best_rank = 0
    winners = 0
    for game in purchase.games:
        outcome = check_winning(game.numbers, draw)
        shown = ", ".join(
            f"✅<b>{number:02d}</b>" if number in winning else f"{number:02d}" for number in game.numbers
        )
        lines.append(f"[{game.slot}] {shown}")
        if outcome.is_winner:
            detail = f"{outcome.match_count} matched"
            if outcome.rank == 2:
                detail += " + bonus"
            lines.append(f"   🎉 <b>Rank {outcome.rank}!</b> ({detail})")
            winners += 1
            if best_rank == 0 or outcome.rank < best_rank:
                best_rank = outcome.rank
        else:
            lines.append(f"   ❌ No prize ({outcome.match_count} matched)")
        lines.append("")

    lines.append("━━━━━━━━━━━━━━━━━━━━")
    if winners:
        lines.append(f"🎊 <b>{winners} winning game(s)!</b>")
        if best_rank <= 3:
            lines.append("💰 <b>Big prize, congratulations!</b>")
    else:
        lines.append("Better luck next time!")
    return "\n".join(lines)
