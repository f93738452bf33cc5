from __future__ import annotations
import argparse
import random
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from shapenet.battle.ai import HeuristicPolicy, RandomPolicy
from shapenet.battle.core import BattleCore
from shapenet.battle.factory import build_roster
from shapenet.battle.models import Action, Side
from shapenet.battle.render import EventRenderer
from shapenet.battle.session import BattleSession, Party, PHASE_SWITCH
from shapenet.core.errors import ShapeNetError
from shapenet.core.logging import logger
from shapenet.net.channel import LoopbackChannel
from shapenet.net.coordinator import SessionCoordinator, SessionState
from shapenet.system.roster_store import builtin_roster, load_roster
from shapenet.system.settings import Settings


def _parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="shapenet", description="Shape battle engine demo")
    p.add_argument("mode", nargs="?", choices=["local", "loopback"], default="local",
                   help="local: you (auto) vs AI; loopback: host/guest session over an in-memory channel")
    p.add_argument("--seed", type=int, default=None, help="RNG seed for a reproducible battle")
    p.add_argument("--roster", type=Path, default=None, help="roster config JSON (defaults to settings)")
    p.add_argument("--opponent", choices=["heuristic", "random"], default="heuristic")
    p.add_argument("--max-turns", type=int, default=200)
    p.add_argument("--quiet", action="store_true", help="only print the outcome")
    return p


def _apply_log_level(settings: Settings):
    # Without debug, keep INFO chatter out of the battle log
    if not settings.data.debug and settings.data.log_level in {"INFO","DEBUG"}:
        logger.set_level("WARN")
    else:
        settings.apply()


def _roster_path(settings: Settings, args) -> Optional[Path]:
    if args.roster:
        return args.roster
    return Path(settings.data.roster_path) if settings.data.roster_path else None


def run_local(settings: Settings, args, console: Console) -> str:
    rng = random.Random(args.seed)
    core = BattleCore(rng)
    player = Party(build_roster(load_roster(_roster_path(settings, args)), "p1", settings.data.level))
    enemy = Party(build_roster(builtin_roster(), "p2", settings.data.level))
    policy = RandomPolicy(rng) if args.opponent == "random" else HeuristicPolicy(rng)
    session = BattleSession(player, enemy, policy=policy, core=core)
    renderer = EventRenderer(console, 0 if args.quiet else settings.data.replay_delay_ms)
    driver = HeuristicPolicy(rng)
    session.max_turns = args.max_turns
    while not session.is_over() and session.turn_counter < args.max_turns:
        if session.needs_switch():
            action = Action.switch(player.first_available())
        else:
            action = driver.choose_action(player.active(), enemy.active())
        events = session.step(action)
        if not args.quiet:
            console.rule(f"Turn {session.turn_counter}")
            renderer.play(events)
            renderer.show_status(session.state)
    return session.outcome()


def run_loopback(settings: Settings, args, console: Console) -> str:
    rng = random.Random(args.seed)
    host_ch, guest_ch = LoopbackChannel.pair()
    host = SessionCoordinator.host(host_ch, build_roster(load_roster(_roster_path(settings, args)), "p1", settings.data.level),
                                   core=BattleCore(rng))
    guest = SessionCoordinator.guest(guest_ch, build_roster(builtin_roster(), "p2", settings.data.level),
                                     room_id=host.room_id)
    renderer = EventRenderer(console, 0 if args.quiet else settings.data.replay_delay_ms)
    if not args.quiet:
        host.on_events = renderer.play
    host.start()
    guest.start()
    policy = HeuristicPolicy(rng)
    turns = 0
    while host.state not in (SessionState.GAME_OVER, SessionState.DISCONNECTED) and turns < args.max_turns:
        for coord in (host, guest):
            side = coord.side
            battle = coord.battle
            phase = battle.side_phase(side)
            if host.state == SessionState.FORCED_SWITCH:
                if phase == PHASE_SWITCH:
                    coord.submit_action(side, Action.switch(battle.party(side).first_available()))
            else:
                coord.submit_action(side, policy.choose_action(battle.active(side), battle.active(side.other)))
        turns += 1
    if guest.desyncs:
        logger.warn("LoopbackDesync", count=guest.desyncs)
    if host.winner == Side.A:
        return "HOST_WIN"
    if host.winner == Side.B:
        return "GUEST_WIN"
    return "DRAW" if host.state == SessionState.GAME_OVER else "STALEMATE"


def run(argv: Optional[List[str]] = None) -> int:
    args = _parser().parse_args(argv)
    settings = Settings.load()
    _apply_log_level(settings)
    console = Console()
    try:
        if args.mode == "loopback":
            outcome = run_loopback(settings, args, console)
        else:
            outcome = run_local(settings, args, console)
    except ShapeNetError as e:
        logger.error("BattleAborted", error=str(e))
        return 1
    console.print(f"[bold]Outcome:[/bold] {outcome}")
    return 0


if __name__ == "__main__":
    raise SystemExit(run())
