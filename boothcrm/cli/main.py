#!/usr/bin/env python3
"""
Booth CRM Terminal CLI
Command-line interface for all booth operations.
"""

import json
import logging
import click

from boothcrm.engine import crm, engagement, notifier, qr_tracker, reports
from boothcrm.errors import ConflictError, NotFoundError, StorageError, ValidationError
from boothcrm.models import Contact, LoummelSignup, QRCode, WheelResult, QR_TYPES, CONTACT_STATUSES
from boothcrm.logging_config import configure_logging, log_call

CLIENT_ERRORS = (ValidationError, NotFoundError, ConflictError)


def _fail(command: str, exc: Exception):
    """Report an engine error to the user and the log."""
    logger = logging.getLogger("boothcrm")
    if isinstance(exc, StorageError):
        logger.error(f"{command} | storage failure: {exc}", exc_info=True)
        click.echo("Error: storage failure, see logs/boothcrm.log", err=True)
    else:
        logger.warning(f"{command} | {type(exc).__name__}: {exc}")
        click.echo(f"Error: {exc}", err=True)


@click.group()
def cli():
    """Booth CRM - Trade-fair lead collection and engagement"""
    configure_logging()
    notifier.register_handlers()


# =============================================================================
# CONTACTS COMMANDS
# =============================================================================

@cli.group()
def contacts():
    """Manage booth contacts (leads)"""
    pass


@contacts.command('list')
@click.option('--status', type=click.Choice(CONTACT_STATUSES), help='Filter by lead status')
@click.option('--search', help='Search name, surname, email, company')
@click.option('--offset', default=0, help='Skip this many results')
@click.option('--limit', default=50, help='Max results (default: 50)')
@log_call
def contacts_list(status, search, offset, limit):
    """List contacts"""
    try:
        results, total = crm.search_contacts(status=status, search=search, offset=offset, limit=limit)
    except (StorageError,) + CLIENT_ERRORS as e:
        _fail('contacts_list', e)
        return

    if not results:
        click.echo("No contacts found.")
        return

    click.echo(f"\nShowing {len(results)} of {total} contacts:\n")
    click.echo(f"{'ID':<34} {'Name':<25} {'Company':<20} {'Status':<6}")
    click.echo("-" * 88)

    for c in results:
        full_name = f"{c.name} {c.surname or ''}".strip()
        click.echo(
            f"{c.id:<34} {full_name[:23]:<25} "
            f"{(c.company or '')[:18]:<20} {c.status:<6}"
        )


@contacts.command('show')
@click.argument('contact_id')
@log_call
def contacts_show(contact_id):
    """Show full contact details"""
    try:
        contact = crm.get_contact(contact_id)
    except NotFoundError:
        logging.getLogger("boothcrm").warning(f"contacts_show | contact_id={contact_id} not found")
        click.echo(f"Contact {contact_id} not found.", err=True)
        return

    click.echo(f"\n{'='*80}")
    click.echo(f"CONTACT {contact.id}: {contact.name} {contact.surname or ''}".rstrip())
    click.echo(f"{'='*80}")
    click.echo(f"Email:       {contact.email}")
    click.echo(f"Phone:       {contact.phone}")
    click.echo(f"Company:     {contact.company or '(not set)'}")
    click.echo(f"Position:    {contact.position or '(not set)'}")
    click.echo(f"Sector:      {contact.sector or '(not set)'}")
    click.echo(f"Size:        {contact.company_size or '(not set)'}")
    click.echo(f"Loummel:     {contact.loummel_interest or '(not set)'}")
    click.echo(f"Callback:    {contact.callback_preference or '(none)'}")
    click.echo(f"Status:      {contact.status}")
    click.echo(f"Source:      {contact.source}")
    click.echo(f"Created:     {contact.created_at}")
    click.echo(f"Updated:     {contact.updated_at}")

    if contact.needs:
        click.echo(f"\nNeeds:\n{contact.needs}")

    click.echo()


@contacts.command('add')
@log_call
def contacts_add():
    """Add a new contact (interactive)"""
    click.echo("\n=== ADD NEW CONTACT ===\n")

    contact = Contact(
        name=click.prompt("First name", type=str),
        surname=click.prompt("Last name", default="", show_default=False) or None,
        email=click.prompt("Email", type=str),
        phone=click.prompt("Phone", type=str),
        company=click.prompt("Company", default="", show_default=False) or None,
        position=click.prompt("Position", default="", show_default=False) or None,
        needs=click.prompt("Needs", default="", show_default=False) or None,
        callback_preference=click.prompt(
            "Callback (urgent/48h/none)",
            type=click.Choice(['urgent', '48h', 'none'], case_sensitive=False),
            default="none",
        ),
        source='booth_cli',
    )
    if contact.callback_preference == 'none':
        contact.callback_preference = None

    try:
        created = crm.create_contact(contact)
    except (StorageError,) + CLIENT_ERRORS as e:
        _fail('contacts_add', e)
        return
    click.echo(f"\n✓ Created contact {created.id}: {created.name} [{created.status}]")


@contacts.command('edit')
@click.argument('contact_id')
@click.option('--status', type=click.Choice(CONTACT_STATUSES), help='Update lead status')
@click.option('--email', help='Update email')
@click.option('--phone', help='Update phone')
@click.option('--company', help='Update company')
@click.option('--needs', help='Update needs')
@log_call
def contacts_edit(contact_id, status, email, phone, company, needs):
    """Edit a contact (use options to set fields)"""
    updates = {}
    if status:
        updates['status'] = status
    if email:
        updates['email'] = email
    if phone:
        updates['phone'] = phone
    if company:
        updates['company'] = company
    if needs:
        updates['needs'] = needs

    if not updates:
        click.echo("No updates specified. Use --status, --email, --phone, --company, or --needs", err=True)
        return

    try:
        crm.update_contact(contact_id, updates)
    except NotFoundError:
        logging.getLogger("boothcrm").warning(f"contacts_edit | contact_id={contact_id} not found")
        click.echo(f"Contact {contact_id} not found", err=True)
        return
    except (StorageError, ValidationError) as e:
        _fail('contacts_edit', e)
        return
    click.echo(f"✓ Updated contact {contact_id}")


@contacts.command('delete')
@click.argument('contact_id')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@log_call
def contacts_delete(contact_id, yes):
    """Permanently erase a contact"""
    if not yes and not click.confirm(f"Erase contact {contact_id}?"):
        click.echo("Cancelled.")
        return
    try:
        crm.delete_contact(contact_id)
    except NotFoundError:
        logging.getLogger("boothcrm").warning(f"contacts_delete | contact_id={contact_id} not found")
        click.echo(f"Contact {contact_id} not found", err=True)
        return
    except StorageError as e:
        _fail('contacts_delete', e)
        return
    click.echo(f"✓ Deleted contact {contact_id}")


@contacts.command('export')
@click.option('--output', '-o', type=click.Path(dir_okay=False, writable=True), help='Write to file instead of stdout')
@log_call
def contacts_export(output):
    """Export all contacts as CSV"""
    try:
        data = crm.export_contacts_csv()
    except StorageError as e:
        _fail('contacts_export', e)
        return

    if output:
        with open(output, 'w', encoding='utf-8', newline='') as f:
            f.write(data)
        click.echo(f"✓ Exported contacts to {output}")
    else:
        click.echo(data, nl=False)


# =============================================================================
# QR CODE COMMANDS
# =============================================================================

@cli.group()
def qr():
    """Manage QR codes and scans"""
    pass


@qr.command('list')
@log_call
def qr_list():
    """List QR codes"""
    results = qr_tracker.list_qr_codes()
    if not results:
        click.echo("No QR codes found.")
        return

    click.echo(f"\n{'ID':<34} {'Name':<25} {'Type':<12} {'Scans':>6}  Active")
    click.echo("-" * 88)
    for q in results:
        click.echo(f"{q.id:<34} {q.name[:23]:<25} {q.type:<12} {q.scan_count:>6}  {'yes' if q.active else 'no'}")


@qr.command('add')
@click.option('--name', prompt='QR code name', help='Display name')
@click.option('--type', 'qr_type', type=click.Choice(QR_TYPES), default='contact', show_default=True)
@click.option('--url', prompt='Target URL', help='Where the code points')
@log_call
def qr_add(name, qr_type, url):
    """Register a QR code"""
    try:
        created = qr_tracker.create_qr_code(QRCode(name=name, type=qr_type, url=url))
    except (StorageError,) + CLIENT_ERRORS as e:
        _fail('qr_add', e)
        return
    click.echo(f"✓ Created QR code {created.id}: {created.name}")


@qr.command('scan')
@click.argument('qr_code_id')
@click.option('--converted', is_flag=True, help='Mark the scan as converted')
@log_call
def qr_scan(qr_code_id, converted):
    """Record a scan of a QR code"""
    try:
        scan = qr_tracker.record_scan(qr_code_id, user_agent='boothcrm-cli', converted=converted)
    except (StorageError,) + CLIENT_ERRORS as e:
        _fail('qr_scan', e)
        return
    click.echo(f"✓ Recorded scan {scan.id}")


@qr.command('convert')
@click.argument('scan_id')
@log_call
def qr_convert(scan_id):
    """Mark a recorded scan as converted"""
    try:
        qr_tracker.mark_scan_converted(scan_id)
    except (StorageError,) + CLIENT_ERRORS as e:
        _fail('qr_convert', e)
        return
    click.echo(f"✓ Scan {scan_id} marked converted")


@qr.command('stats')
@click.argument('qr_code_id')
@log_call
def qr_stats(qr_code_id):
    """Scan totals and conversion rate for a QR code"""
    try:
        stats = qr_tracker.stats_for(qr_code_id)
    except NotFoundError:
        click.echo(f"QR code {qr_code_id} not found.", err=True)
        return
    click.echo(f"Total scans:     {stats['total_scans']}")
    click.echo(f"Conversions:     {stats['conversions']}")
    click.echo(f"Conversion rate: {stats['conversion_rate']}%")


@qr.command('top')
@click.option('--limit', default=5, help='Number of codes (default: 5)')
@log_call
def qr_top(limit):
    """Most scanned QR codes"""
    ranking = qr_tracker.top_qr_codes(limit=limit)
    if not ranking:
        click.echo("No QR codes found.")
        return
    for position, entry in enumerate(ranking, start=1):
        click.echo(f"{position:>2}. {entry['name']:<30} {entry['scans']:>6} scans")


# =============================================================================
# ENGAGEMENT COMMANDS
# =============================================================================

@cli.group()
def signups():
    """Loummel marketplace signups"""
    pass


@signups.command('add')
@click.option('--name', prompt='Name')
@click.option('--email', prompt='Email')
@click.option('--phone', prompt='Phone')
@log_call
def signups_add(name, email, phone):
    """Register a marketplace signup"""
    try:
        signup = engagement.create_signup(LoummelSignup(name=name, email=email, phone=phone))
    except (StorageError,) + CLIENT_ERRORS as e:
        _fail('signups_add', e)
        return
    click.echo(f"✓ Signed up {signup.email}, promo code: {signup.promo_code}")


@signups.command('list')
@click.option('--offset', default=0)
@click.option('--limit', default=50)
@log_call
def signups_list(offset, limit):
    """List marketplace signups"""
    results, total = engagement.list_signups(offset=offset, limit=limit)
    if not results:
        click.echo("No signups yet.")
        return
    click.echo(f"\nShowing {len(results)} of {total} signups:\n")
    for s in results:
        click.echo(f"{s.name[:25]:<27} {s.email:<35} {s.promo_code}")


@cli.group()
def wheel():
    """Prize wheel game"""
    pass


@wheel.command('play')
@click.option('--name', prompt='Name')
@click.option('--email', prompt='Email')
@click.option('--prize', prompt='Prize won')
@log_call
def wheel_play(name, email, prize):
    """Record a wheel result"""
    try:
        result = engagement.record_wheel_result(WheelResult(name=name, email=email, prize=prize))
    except (StorageError,) + CLIENT_ERRORS as e:
        _fail('wheel_play', e)
        return
    click.echo(f"✓ {result.name} won: {result.prize}")


@wheel.command('stats')
@log_call
def wheel_stats():
    """Prize distribution"""
    stats = engagement.wheel_stats()
    click.echo(f"Total plays: {stats['total_plays']}")
    for prize, count in stats['distribution'].items():
        click.echo(f"  {prize:<30} {count:>5}")


# =============================================================================
# ANALYTICS COMMANDS
# =============================================================================

@cli.command('dashboard')
@log_call
def dashboard():
    """Today vs all-time KPIs"""
    kpis = reports.dashboard_kpis()
    click.echo(f"\n{'':<14}{'Today':>8}{'Total':>8}")
    click.echo(f"{'Contacts':<14}{kpis['today_contacts']:>8}{kpis['total_contacts']:>8}")
    click.echo(f"{'Scans':<14}{kpis['today_scans']:>8}{kpis['total_scans']:>8}")
    click.echo(f"{'Signups':<14}{kpis['today_signups']:>8}{kpis['total_signups']:>8}")
    click.echo(f"{'Wheel plays':<14}{kpis['today_wheel_plays']:>8}{kpis['total_wheel_plays']:>8}")
    click.echo(f"\nHot leads: {kpis['hot_leads']}   QR codes: {kpis['qr_codes']}\n")


@cli.command('report')
@click.argument('kind', type=click.Choice(reports.REPORT_KINDS))
@log_call
def report(kind):
    """Generate a daily, event or ROI report (JSON)"""
    try:
        result = reports.generate_report(kind)
    except (StorageError, ValidationError) as e:
        _fail('report', e)
        return
    click.echo(json.dumps(result, indent=2, ensure_ascii=False))


# =============================================================================
# MAIN
# =============================================================================

if __name__ == '__main__':
    cli()
