#!/usr/bin/env python3
"""
对战脚本

Usage:
    python scripts/play.py --mode watch --players 4 --strategies standard easy hard model
    python scripts/play.py --mode play --players 3   # 与电脑对战
    python scripts/play.py --mode tournament --strategies standard easy hard --games 5
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List
import time

# 添加项目根目录到路径
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

import torch

from core.cards import cards_to_str
from core.state import Seat, MatchState, MoveResult, create_match
from core.session import MatchSession
from evaluation import Arena
from models import build_scorer
from strategy import Strategy, build_strategy

logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
)
logger = logging.getLogger(__name__)


def parse_args():
    parser = argparse.ArgumentParser(description="AlphaBig2 Play")

    parser.add_argument(
        "--mode",
        type=str,
        default="watch",
        choices=["watch", "play", "tournament"],
        help="Mode: watch computer seats, play against them, or run a round robin",
    )
    parser.add_argument("--players", type=int, default=4, choices=[2, 3, 4], help="Number of seats")
    parser.add_argument(
        "--strategies",
        type=str,
        nargs="+",
        default=["standard"],
        help="Strategy tags, cycled over the computer seats",
    )
    parser.add_argument("--games", type=int, default=1, help="Number of games")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--delay", type=float, default=0.0, help="Delay between moves")
    parser.add_argument("--model", type=str, help="PlayScorer weights for 'model' seats")
    parser.add_argument("--device", type=str, default="cpu")

    return parser.parse_args()


def load_scorer(path: str) -> torch.nn.Module:
    """加载评分网络"""
    model = build_scorer()
    checkpoint = torch.load(path, map_location="cpu")
    if "model_state_dict" in checkpoint:
        model.load_state_dict(checkpoint["model_state_dict"])
    else:
        model.load_state_dict(checkpoint)
    model.eval()
    return model


def create_strategies(args, count: int) -> List[Strategy]:
    """按标签创建策略"""
    scorer = load_scorer(args.model) if args.model else None
    strategies = []
    for i in range(count):
        tag = args.strategies[i % len(args.strategies)]
        kwargs = {} if args.seed is None else {"seed": args.seed + i}
        if tag == "model":
            kwargs["device"] = args.device
            if scorer is not None:
                kwargs["model"] = scorer
        strategy = build_strategy(tag, **kwargs)
        strategy.name = f"{strategy.name}_{i}"
        strategies.append(strategy)
    return strategies


def log_move(match: MatchState, seat: Seat, result: MoveResult):
    """记录一步 (被拒绝的命令只记录原因)"""
    if not result.success:
        logger.warning(f"{seat.name:>12}: rejected ({result.message})")
    elif result.action == "play":
        cards = cards_to_str(match.move_history[-1].cards)
        logger.info(f"{seat.name:>12}: {cards:<20} ({len(match.hands[seat.identity])} left)")
    else:
        logger.info(f"{seat.name:>12}: Pass")
    if result.new_round:
        logger.info(f"--- Round {match.round_number}, {match.get_current_seat().name} leads ---")


def watch_game(args):
    """观看电脑对战"""
    def on_move(match, seat, result):
        log_move(match, seat, result)
        if args.delay > 0:
            time.sleep(args.delay)

    arena = Arena(seed=args.seed, on_move=on_move)
    strategies = create_strategies(args, args.players)

    for game_idx in range(args.games):
        logger.info("=" * 60)
        logger.info(f"Game {game_idx + 1}/{args.games}: {' vs '.join(s.name for s in strategies)}")
        logger.info("=" * 60)

        result = arena.play_match(strategies, n_games=1)[0]

        logger.info("=" * 60)
        logger.info(f"Winner: {result.winner} ({result.moves} moves, {result.rounds} rounds)")


def play_game(args):
    """与电脑对战 (你坐第一个座位)"""
    strategies = create_strategies(args, args.players - 1)
    seats = [Seat(identity="you", display_name="You")] + [
        Seat(identity=f"seat{i + 1}", display_name=s.name, is_computer_controlled=True)
        for i, s in enumerate(strategies)
    ]

    for game_idx in range(args.games):
        match = create_match(seats, seed=None if args.seed is None else args.seed + game_idx)
        session = MatchSession(match, {seat.identity: s for seat, s in zip(seats[1:], strategies)})
        logger.info(f"Game {game_idx + 1}/{args.games}, {match.get_current_seat().name} opens")

        while not match.is_finished:
            seat = match.get_current_seat()
            if session.is_computer_turn():
                result = session.run_computer_turn()
                if result is not None:
                    log_move(match, seat, result)
                time.sleep(args.delay)
                continue

            snapshot = match.snapshot_for("you")
            plays = match.legal_plays("you")
            lead = snapshot.table_lead
            logger.info(f"\nTable: {lead if lead is not None else '(lead)'}")
            logger.info(f"Opponents: {', '.join(f'{k}={v}' for k, v in snapshot.hand_sizes.items() if k != 'you')}")
            logger.info(f"Your hand: {cards_to_str(snapshot.own_hand)}")
            for i, play in enumerate(plays[:30]):
                logger.info(f"  {i}: {play}")
            if len(plays) > 30:
                logger.info(f"  ... {len(plays) - 30} more")

            choice = input("Choose a play number, 'p' to pass, 'q' to quit: ").strip().lower()
            if choice == "q":
                session.close()
                return
            if choice == "p":
                result = session.pass_turn("you")
            elif choice.isdigit() and int(choice) < len(plays):
                result = session.play("you", plays[int(choice)].cards)
            else:
                logger.info("Invalid choice")
                continue

            if not result.success:
                logger.info(f"Rejected: {result.message}")
            else:
                log_move(match, seat, result)

        session.close()
        logger.info("You win!" if match.winner == "you" else f"Winner: {match.get_seat(match.winner).name}")


def run_tournament(args):
    """循环赛"""
    arena = Arena(seed=args.seed)
    strategies = create_strategies(args, len(args.strategies))
    result = arena.round_robin(
        strategies,
        seats_per_match=min(args.players, len(strategies)),
        games_per_match=args.games,
    )
    logger.info(repr(result))


def main():
    args = parse_args()

    logger.info("=" * 60)
    logger.info("AlphaBig2 锄大地")
    logger.info("=" * 60)

    if args.mode == "watch":
        watch_game(args)
    elif args.mode == "play":
        play_game(args)
    else:
        run_tournament(args)


if __name__ == "__main__":
    main()
