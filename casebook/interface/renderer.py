"""
Display and rendering helpers for the casebook console.

Handles theming, status tables and turning engine events into output.
"""

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from prompt_toolkit.styles import Style as PTStyle

from ..engine import GameContext
from ..state.event_bus import EventType, GameEvent
from ..state.schema import EndingType
from ..systems.endings import ENDING_TITLES


# Shared console instance
console = Console()

# -----------------------------------------------------------------------------
# Theme: gaslight and old paper
# -----------------------------------------------------------------------------

THEME = {
    "primary": "dark_goldenrod",    # lamp light
    "secondary": "wheat1",          # old paper
    "warning": "orange3",
    "danger": "dark_red",
    "accent": "cyan",
    "dim": "dim",
    "speaker": "bold sandy_brown",
}

pt_style = PTStyle.from_dict({
    "completion-menu.completion": "bg:#3b2f1e #d7c7a1",
    "completion-menu.completion.current": "bg:#7a5c2e #ffffff bold",
    "prompt": "#d7af5f bold",
})

ENDING_COLORS = {
    EndingType.TRUE: "gold1",
    EndingType.GOOD: "green3",
    EndingType.NORMAL: "wheat1",
    EndingType.BAD: "dark_red",
}


def show_banner(context: GameContext) -> None:
    title = context.scenario.title or context.scenario.id
    console.print(Panel(
        f"[bold {THEME['primary']}]{title}[/bold {THEME['primary']}]\n"
        f"[{THEME['dim']}]Type 'help' for commands.[/{THEME['dim']}]",
        border_style=THEME["primary"],
    ))


def show_status(context: GameContext) -> None:
    """Show chapter, time, points and progress."""
    authority = context.authority
    economy = context.economy
    chapter = context.scenario.chapter(authority.chapter)

    table = Table(
        title=f"[bold {THEME['primary']}]{chapter.title or chapter.id}[/bold {THEME['primary']}]",
        show_header=False,
        box=None,
    )
    table.add_column("Key", style=THEME["dim"])
    table.add_column("Value", style=THEME["secondary"])

    if economy.is_critical:
        points_color = THEME["danger"]
    elif economy.is_low:
        points_color = THEME["warning"]
    else:
        points_color = THEME["secondary"]

    location = context.locations.get(authority.location)
    table.add_row("Phase", authority.phase.value)
    table.add_row("Time", f"{authority.time_slot.value} ({authority.time_actions_remaining} actions left)")
    table.add_row("Location", location.name if location else authority.location)
    table.add_row("Action points", f"[{points_color}]{economy.current}/{economy.max}[/{points_color}]")
    table.add_row(
        "Clues",
        f"{context.ledger.discovered_count}/{context.ledger.total_clues} "
        f"({context.ledger.completion_ratio():.0%})",
    )
    table.add_row("Deductions", str(len(context.ledger.deductions)))
    if context.flow.completed_chapters:
        table.add_row("Completed", ", ".join(context.flow.completed_chapters))

    console.print(table)


def show_location(context: GameContext) -> None:
    """Describe the current location and what can be done there."""
    location = context.locations.get(context.authority.location)
    if location is None:
        console.print(f"[{THEME['dim']}]You are nowhere in particular.[/{THEME['dim']}]")
        return

    console.print(f"[bold {THEME['primary']}]{location.name}[/bold {THEME['primary']}]")
    if location.description:
        console.print(f"[{THEME['secondary']}]{location.description}[/{THEME['secondary']}]")

    npcs = context.locations.npcs_at(location.id)
    if npcs:
        console.print(f"[{THEME['dim']}]People:[/{THEME['dim']}] {', '.join(npcs)}")
    clues = context.locations.clues_at(location.id, context.ledger)
    if clues:
        console.print(f"[{THEME['dim']}]Worth a look:[/{THEME['dim']}] {', '.join(clues)}")
    exits = [loc.id for loc in context.locations.available()]
    if exits:
        console.print(f"[{THEME['dim']}]Exits:[/{THEME['dim']}] {', '.join(exits)}")


def show_clues(context: GameContext) -> None:
    table = Table(title="Notebook", box=None)
    table.add_column("Clue", style=THEME["secondary"])
    table.add_column("Category", style=THEME["dim"])
    table.add_column("Importance")
    for clue in context.ledger.get_discovered():
        table.add_row(clue.name or clue.id, clue.category.value, clue.importance.value)
    console.print(table)
    for deduction in context.ledger.deductions:
        console.print(f"  [{THEME['accent']}]*[/{THEME['accent']}] {deduction.text}")


def render_event(event: GameEvent) -> None:
    """Print the events a player should see. Everything else is silent."""
    data = event.data
    t = event.type

    if t == EventType.DIALOGUE_LINE:
        console.print(f"[{THEME['speaker']}]{data['speaker']}:[/{THEME['speaker']}] {data['text']}")
    elif t == EventType.CHOICES_PRESENTED:
        for i, text in enumerate(data["choices"], 1):
            console.print(f"  [{THEME['accent']}]{i}.[/{THEME['accent']}] {text}")
    elif t == EventType.DEFAULT_GREETING:
        console.print(f"[{THEME['speaker']}]{data['npc_id']}:[/{THEME['speaker']}] {data['text']}")
    elif t == EventType.FREEFORM_REPLY:
        console.print(f"[{THEME['speaker']}]{data['npc_id']}:[/{THEME['speaker']}] {data['text']}")
    elif t == EventType.DIALOGUE_ENDED:
        console.print(f"[{THEME['dim']}](conversation ended)[/{THEME['dim']}]")
    elif t == EventType.CLUE_DISCOVERED:
        console.print(f"[{THEME['accent']}]Clue found:[/{THEME['accent']}] {data['name'] or data['clue_id']}")
    elif t == EventType.DEDUCTION_MADE:
        console.print(f"[{THEME['accent']}]Deduction:[/{THEME['accent']}] {data['deduction'].text}")
    elif t == EventType.ACTION_POINTS_LOW:
        console.print(f"[{THEME['warning']}]Action points running low ({data['current']}).[/{THEME['warning']}]")
    elif t == EventType.ACTION_POINTS_CRITICAL:
        console.print(f"[{THEME['danger']}]Action points critical ({data['current']})![/{THEME['danger']}]")
    elif t == EventType.TIME_SLOT_CHANGED:
        console.print(f"[{THEME['dim']}]It is now {data['new'].value}.[/{THEME['dim']}]")
    elif t == EventType.CHAPTER_COMPLETED:
        console.print(Panel(
            f"Chapter complete: {data['chapter']}. Type 'chapter' to move on.",
            border_style=THEME["primary"],
        ))
    elif t == EventType.CHAPTER_CHANGED:
        console.print(Panel(f"Chapter: {data['new']}", border_style=THEME["primary"]))
    elif t == EventType.ALL_CHAPTERS_COMPLETED:
        console.print(Panel(
            "The investigation is over. Name the culprit with 'accuse <id>'.",
            border_style=THEME["warning"],
        ))
    elif t == EventType.OBSERVATION_STARTED:
        console.print(f"[{THEME['dim']}]You watch the room closely ({data['seconds']}s).[/{THEME['dim']}]")
    elif t == EventType.ENDING_REACHED:
        ending = data["ending"]
        color = ENDING_COLORS.get(ending, THEME["secondary"])
        console.print(Panel(
            f"[bold {color}]{ENDING_TITLES.get(ending, ending.value)}[/bold {color}]\n"
            f"Clues found: {data['clue_ratio']:.0%}   Goodwill: {data['avg_affinity']:.0f}",
            border_style=color,
        ))
    elif t == EventType.ACTION_REFUSED:
        console.print(f"[{THEME['warning']}]{data['reason']}[/{THEME['warning']}]")
