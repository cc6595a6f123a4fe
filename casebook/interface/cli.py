"""
Command-line interface for casebook.

Main entry point and game loop. The loop only turns typed commands into
orchestrator requests; everything shown on screen comes from events.
"""

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Callable

from prompt_toolkit import prompt as pt_prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.history import InMemoryHistory

from ..config import load_config, set_exhaustion_policy
from ..engine import GameContext
from ..errors import ContentError, InvariantViolation
from ..llm import create_llm_client
from ..state.content import default_scenario, load_scenario
from ..state.store import JsonSaveStore
from .renderer import (
    console, THEME, pt_style,
    show_banner, show_status, show_location, show_clues, render_event,
)

logger = logging.getLogger(__name__)


COMMAND_META = {
    "status": "Show chapter, time and points",
    "look": "Describe this place",
    "go": "go <location> - walk somewhere",
    "talk": "talk <npc> - start a conversation",
    "next": "Continue the conversation",
    "skip": "Skip to the end of what is being said",
    "choose": "choose <n> - pick a reply",
    "say": "say <text> - say something of your own",
    "bye": "End the conversation",
    "investigate": "investigate <clue> - examine something",
    "observe": "Watch the room closely",
    "stop": "Stop observing",
    "rest": "Rest to recover action points",
    "deduce": "deduce <clue> <clue> ... - connect clues",
    "hint": "Ask yourself what you might be missing",
    "clues": "Show your notebook",
    "accuse": "accuse <character> - name the culprit",
    "chapter": "Move on to the next chapter",
    "save": "save <slot> - save the game",
    "load": "load <slot> - load a saved game",
    "saves": "List saved games",
    "help": "Show this list",
    "quit": "Leave the manor",
}


def show_help() -> None:
    for name, meta in COMMAND_META.items():
        console.print(f"  [{THEME['accent']}]{name:<12}[/{THEME['accent']}] {meta}")


def create_commands(context: GameContext, store: JsonSaveStore) -> dict[str, Callable[[list[str]], None]]:
    """Map command words to handlers taking the remaining arguments."""
    flow = context.flow

    def need(args: list[str], usage: str) -> bool:
        if not args:
            console.print(f"[{THEME['dim']}]Usage: {usage}[/{THEME['dim']}]")
            return False
        return True

    def go(args):
        if need(args, "go <location>") and flow.request_move(args[0]):
            show_location(context)

    def talk(args):
        if need(args, "talk <npc>"):
            flow.request_talk(args[0])

    def choose(args):
        if need(args, "choose <n>") and args[0].isdigit():
            flow.select_choice(int(args[0]) - 1)

    def say(args):
        if need(args, "say <text>"):
            asyncio.run(flow.request_freeform(" ".join(args)))

    def investigate(args):
        if need(args, "investigate <clue>"):
            flow.request_investigate(args[0])

    def deduce(args):
        if not need(args, "deduce <clue> <clue> ..."):
            return
        names = [context.scenario.clue(cid).name if context.scenario.clue(cid) else cid for cid in args]
        flow.request_deduction(args, f"{' and '.join(names)} are connected.")

    def hint(args):
        console.print(f"[{THEME['dim']}]{context.ledger.hint()}[/{THEME['dim']}]")

    def accuse(args):
        if need(args, "accuse <character>"):
            flow.request_accuse(args[0])

    def save(args):
        slot = args[0] if args else "quicksave"
        context.save_to(store, slot)
        console.print(f"[{THEME['dim']}]Saved to '{slot}'.[/{THEME['dim']}]")

    def load(args):
        slot = args[0] if args else "quicksave"
        try:
            if context.load_from(store, slot):
                show_status(context)
            else:
                console.print(f"[{THEME['warning']}]No save called '{slot}'.[/{THEME['warning']}]")
        except InvariantViolation as e:
            console.print(f"[{THEME['danger']}]Cannot load: {e}[/{THEME['danger']}]")

    def saves(args):
        for entry in store.list_all():
            console.print(
                f"  {entry['slot']:<12} {entry['chapter']:<10} "
                f"{entry['clues']} clues  {entry['saved_at']:%Y-%m-%d %H:%M}"
            )

    return {
        "status": lambda args: show_status(context),
        "look": lambda args: show_location(context),
        "go": go,
        "talk": talk,
        "next": lambda args: flow.advance_dialogue(),
        "skip": lambda args: flow.skip_dialogue(),
        "choose": choose,
        "say": say,
        "bye": lambda args: flow.end_dialogue(),
        "investigate": investigate,
        "observe": lambda args: flow.request_observe(),
        "stop": lambda args: flow.end_observation(),
        "rest": lambda args: flow.request_rest(),
        "deduce": deduce,
        "hint": hint,
        "clues": lambda args: show_clues(context),
        "accuse": accuse,
        "chapter": lambda args: flow.advance_chapter(),
        "save": save,
        "load": load,
        "saves": saves,
        "help": lambda args: show_help(),
    }


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="casebook - narrative mystery engine")
    parser.add_argument("--scenario", "-s", type=Path, help="Scenario file (YAML or JSON)")
    parser.add_argument("--saves", type=Path, default=Path("saves"), help="Save directory")
    parser.add_argument(
        "--policy",
        choices=["advance", "halt"],
        help="What happens when action points run out",
    )
    parser.add_argument("--backend", default="gemini", choices=["gemini", "none"])
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s [%(levelname)s] %(message)s',
    )

    try:
        scenario = load_scenario(args.scenario) if args.scenario else default_scenario()
    except ContentError as e:
        console.print(f"[{THEME['danger']}]{e}[/{THEME['danger']}]")
        return 1

    if args.policy:
        # Remembered for later sessions
        set_exhaustion_policy(args.policy, args.saves)
    config = load_config(args.saves)

    context = GameContext.create(scenario, config, llm=create_llm_client(args.backend))
    context.bus.on_any(render_event)
    store = JsonSaveStore(args.saves)
    commands = create_commands(context, store)
    completer = WordCompleter(list(COMMAND_META), ignore_case=True)
    history = InMemoryHistory()

    show_banner(context)
    context.start_new_game()
    show_location(context)

    while True:
        try:
            user_input = pt_prompt("> ", completer=completer, history=history, style=pt_style).strip()
        except (KeyboardInterrupt, EOFError):
            break

        if not user_input:
            continue
        word, *rest = user_input.split()
        word = word.lower()
        if word in ("quit", "exit"):
            break

        handler = commands.get(word)
        if handler is None:
            console.print(f"[{THEME['dim']}]Unknown command '{word}'. Type 'help'.[/{THEME['dim']}]")
            continue
        handler(rest)

    console.print(f"[{THEME['dim']}]The fog closes in behind you.[/{THEME['dim']}]")
    return 0
