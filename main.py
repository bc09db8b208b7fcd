#!/usr/bin/env python3
"""
Booth CRM - Interactive Menu Launcher
Run this file to access all booth commands through a simple menu.

Usage:
    python main.py
"""

import subprocess
import sys
import os

# Ensure we're running from the project root with the venv python
PYTHON = sys.executable
CRM = [PYTHON, "boothcrm/cli/main.py"]

# Project root on PYTHONPATH so 'boothcrm' package is importable
ENV = os.environ.copy()
ENV["PYTHONPATH"] = os.path.dirname(os.path.abspath(__file__))


def run(args: list[str]):
    """Run a CLI command and return to menu when done."""
    print()
    subprocess.run(CRM + args, env=ENV)
    print()
    input("  Press Enter to return to menu...")


def prompt(label: str, required: bool = True) -> str:
    """Prompt user for input. Returns empty string if optional and skipped."""
    while True:
        value = input(f"  {label}: ").strip()
        if value:
            return value
        if not required:
            return ""
        print("  (required - please enter a value)")


def prompt_optional(label: str) -> str:
    return prompt(f"{label} (optional, Enter to skip)", required=False)


def clear():
    os.system("cls" if os.name == "nt" else "clear")


# =============================================================================
# COMMAND HANDLERS
# =============================================================================

def contacts_list():
    args = ["contacts", "list"]
    s = prompt_optional("Filter by status (hot/warm/cold)")
    q = prompt_optional("Search text")
    if s: args += ["--status", s]
    if q: args += ["--search", q]
    run(args)

def contacts_show():
    cid = prompt("Contact ID")
    run(["contacts", "show", cid])

def contacts_add():
    run(["contacts", "add"])

def contacts_edit():
    cid = prompt("Contact ID")
    args = ["contacts", "edit", cid]
    s = prompt_optional("New status (hot/warm/cold)")
    e = prompt_optional("New email")
    p = prompt_optional("New phone")
    if s: args += ["--status", s]
    if e: args += ["--email", e]
    if p: args += ["--phone", p]
    run(args)

def contacts_delete():
    cid = prompt("Contact ID")
    run(["contacts", "delete", cid])

def contacts_export():
    path = prompt_optional("Output file (default: print to screen)")
    args = ["contacts", "export"]
    if path: args += ["--output", path]
    run(args)

def qr_list():
    run(["qr", "list"])

def qr_add():
    run(["qr", "add"])

def qr_scan():
    qid = prompt("QR code ID")
    args = ["qr", "scan", qid]
    c = input("  Converted? (y/N): ").strip().lower()
    if c == "y": args += ["--converted"]
    run(args)

def qr_convert():
    sid = prompt("Scan ID")
    run(["qr", "convert", sid])

def qr_stats():
    qid = prompt("QR code ID")
    run(["qr", "stats", qid])

def qr_top():
    n = prompt_optional("Number of codes (default: 5)")
    args = ["qr", "top"]
    if n: args += ["--limit", n]
    run(args)

def signups_add():
    run(["signups", "add"])

def signups_list():
    run(["signups", "list"])

def wheel_play():
    run(["wheel", "play"])

def wheel_stats():
    run(["wheel", "stats"])

def dashboard():
    run(["dashboard"])

def report():
    kind = prompt("Report type (daily/event/roi)")
    run(["report", kind])


# =============================================================================
# MENU LAYOUT
# =============================================================================

MENU = [
    ("CONTACTS", [
        ("List contacts",                contacts_list),
        ("Show contact details",         contacts_show),
        ("Add new contact",              contacts_add),
        ("Edit contact",                 contacts_edit),
        ("Erase contact",                contacts_delete),
        ("Export contacts (CSV)",        contacts_export),
    ]),
    ("QR CODES", [
        ("List QR codes",                qr_list),
        ("Add QR code",                  qr_add),
        ("Record a scan",                qr_scan),
        ("Mark scan converted",          qr_convert),
        ("QR code stats",                qr_stats),
        ("Top QR codes",                 qr_top),
    ]),
    ("ENGAGEMENT", [
        ("Loummel signup",               signups_add),
        ("List signups",                 signups_list),
        ("Record wheel result",          wheel_play),
        ("Wheel stats",                  wheel_stats),
    ]),
    ("REPORTS", [
        ("Dashboard",                    dashboard),
        ("Generate report",              report),
    ]),
]


def print_menu():
    clear()
    print("=" * 50)
    print("   BOOTH CRM - COMMAND CENTRE")
    print("=" * 50)

    n = 1
    numbering = {}  # maps display number -> handler function

    for section, commands in MENU:
        print(f"\n  {section}")
        print(f"  {'-' * len(section)}")
        for label, handler in commands:
            print(f"  {n:>2}.  {label}")
            numbering[n] = handler
            n += 1

    print("\n" + "=" * 50)
    print("   0.  Exit")
    print("=" * 50)
    return numbering


def main():
    while True:
        numbering = print_menu()

        try:
            choice = input("\n  Select a command: ").strip()
        except (KeyboardInterrupt, EOFError):
            print("\n\n  Goodbye!\n")
            break

        if choice == "0" or choice.lower() in ("q", "quit", "exit"):
            print("\n  Goodbye!\n")
            break

        try:
            n = int(choice)
            if n in numbering:
                clear()
                numbering[n]()
            else:
                print(f"\n  Invalid selection: {choice}")
                input("  Press Enter to continue...")
        except ValueError:
            print(f"\n  Please enter a number.")
            input("  Press Enter to continue...")


if __name__ == "__main__":
    main()
