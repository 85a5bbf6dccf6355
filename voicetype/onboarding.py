from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table
from rich.text import Text

from . import config as config_mod
from .models import Config


def run_onboarding() -> Config:
    console = Console()

    console.clear()

    welcome_text = Text()
    welcome_text.append("🎤 Welcome to voicetype!\n\n", style="bold cyan")
    welcome_text.append("Run it once to record, again to type what you said\n", style="dim")

    console.print(Panel(welcome_text, border_style="cyan", expand=False))
    console.print()

    config = Config()

    console.print("[bold]Transcription Provider[/bold]")
    console.print()

    console.print("Choose your transcription provider:")
    console.print("  1. Deepgram (recommended, fast)")
    console.print("  2. OpenAI Whisper API")
    console.print()

    backend_choice = Prompt.ask("Select option", choices=["1", "2"], default="1")

    console.print()
    if backend_choice == "1":
        config.backend = "deepgram"
        console.print("Enter your Deepgram API key:")
        console.print("(Get one at https://console.deepgram.com)")
        config.deepgram_api_key = Prompt.ask("API Key", password=True) or None
        config.deepgram_model = Prompt.ask("Model", default=config.deepgram_model)
    else:
        config.backend = "openai"
        console.print("Enter your OpenAI API key:")
        console.print("(Get one at https://platform.openai.com/api-keys)")
        config.openai_api_key = Prompt.ask("API Key", password=True) or None

    console.print()
    console.print("[bold]Recording[/bold]")
    console.print()

    config.language = Prompt.ask("Spoken language", default=config.language)
    config.max_duration = IntPrompt.ask("Maximum recording length (seconds)", default=config.max_duration)
    config.audio_device = Prompt.ask("PulseAudio source", default=config.audio_device)

    console.print()
    console.print("[bold]Text Insertion[/bold]")
    console.print()

    console.print("Where should transcribed text go?")
    console.print("  1. Paste into the focused window (recommended)")
    console.print("  2. Type it key by key")
    console.print("  3. Copy to clipboard only")
    console.print()

    insert_choice = Prompt.ask("Select option", choices=["1", "2", "3"], default="1")
    config.output_mode = {"1": "paste", "2": "type", "3": "clipboard"}[insert_choice]

    console.print()
    console.print("[bold green]✓ Setup Complete![/bold green]")
    console.print()

    summary = Table(show_header=False, box=None, padding=(0, 2))
    summary.add_column(style="cyan")
    summary.add_column()

    summary.add_row("Provider:", config.backend)
    summary.add_row("Language:", config.language)
    summary.add_row("Max duration:", f"{config.max_duration}s")
    summary.add_row("Insert mode:", config.output_mode)

    console.print(Panel(summary, title="Your Configuration", border_style="green"))
    console.print()

    if Confirm.ask("Save this configuration?", default=True):
        config_mod.save_config(config)
        console.print("[green]Configuration saved to[/green]", config_mod.CONFIG_PATH)
        console.print()
        console.print("[bold]Bind this command to a hotkey:[/bold]")
        console.print("  [cyan]voicetype[/cyan]")
        console.print()
        console.print("[bold]To check your setup, run:[/bold]")
        console.print("  [cyan]voicetype check[/cyan]")
        console.print()
        return config
    else:
        console.print("[yellow]Configuration not saved. Run 'voicetype setup' to try again.[/yellow]")
        return config
