#!/usr/bin/env python3
"""Main entry point for identity card NFC operations."""

import json
import logging
import argparse
import os

import ndef
from smartcard.CardMonitoring import CardMonitor

from src.card.codec import decode, encode
from src.card.data import CardData, SyncReport, WriteResult
from src.card.exceptions import CardDataError
from src.card.reading import read_raw_message, read_structured_data
from src.card.records import encode_message, iter_records
from src.card.sync import compare_policies, merge_and_write, sync_policies_to_card
from src.nfc.constants import VCARD_PROFILE_BASE_URL
from src.nfc.exceptions import MessageTooLargeError, NFCError
from src.nfc.ndef_file import NDEFFile, build_tlv
from src.nfc.reader import NFCReader
from src.nfc.session import CardSession, Mode, SessionObserver, TagEvent
from src.utils.logging import setup_logging
from src.utils.policy_csv import PolicyCSVHandler


def wait_for_tap() -> bool:
    logging.info("Waiting for tag... Please touch an NFC tag to the reader then press enter or (q) to quit.")
    return input().lower() != 'q'


def load_card_data(path: str) -> CardData:
    """Load card data from a JSON file."""
    with open(path, 'r', encoding='utf-8') as f:
        return CardData.from_dict(json.load(f))


def log_card_data(data: CardData):
    logging.info("\nCard contents:")
    logging.info("-" * 50)
    if data.vcard_url:
        logging.info(f"vCard URL: {data.vcard_url}")
    if data.personal_info:
        logging.info("Personal info:")
        for key, value in data.personal_info.items():
            logging.info(f"    {key}: {value}")
    if data.emergency_contact:
        logging.info("Emergency contact:")
        for key, value in data.emergency_contact.items():
            logging.info(f"    {key}: {value}")
    for index, policy in enumerate(data.insurance_policies, 1):
        logging.info(f"Policy {index}:")
        for key, value in policy.items():
            logging.info(f"    {key}: {value}")
    if not (data.vcard_url or data.personal_info or data.emergency_contact or data.insurance_policies):
        logging.info("Card holds no recognized records")


def log_write_result(result: WriteResult):
    if result.success:
        logging.info(result.message)
    else:
        logging.error(f"Write failed ({result.status.value}): {result.message}")


def log_sync_report(report: SyncReport):
    logging.info("\nComparison:")
    logging.info("-" * 50)
    logging.info(f"Only on remote: {len(report.remote_only)}")
    for policy in report.remote_only:
        logging.info(f"    {policy.get('Policy Number', '(no number)')}")
    logging.info(f"Only on card:   {len(report.tag_only)}")
    for policy in report.tag_only:
        logging.info(f"    {policy.get('Policy Number', '(no number)')}")
    logging.info(f"Differences:    {len(report.differences)}")
    for diff in report.differences:
        logging.info(f"    {diff.policy_number} {diff.field}: card={diff.tag_value!r} remote={diff.remote_value!r}")
    logging.info("Sync needed" if report.needs_sync else "Card and remote are in sync")


def log_tag_event(event: TagEvent):
    if event.status == 'read' and event.data is not None:
        logging.info(f"Card {event.uid} read on {event.reader}")
        log_card_data(event.data)
    else:
        logging.info(f"[{event.mode.value}] {event.status}: {event.message}")


def read_policies_file(path: str):
    policies = PolicyCSVHandler(path).read_policies()
    logging.info(f"Loaded {len(policies)} policies from {path}")
    return policies


def handle_nfc_operation(args):
    """Handle commands that need a tag on the reader."""
    reader = NFCReader()
    if not reader.connect():
        return

    try:
        if not wait_for_tap():
            return

        if args.command == 'read':
            if args.uid:
                uid = reader.read_tag_uid()
                if uid:
                    logging.info(f"UID: {uid}")
            else:
                log_card_data(read_structured_data(reader))

        elif args.command == 'write':
            data = load_card_data(args.data_file)
            log_write_result(merge_and_write(reader, data, base_url=args.profile_base_url))

        elif args.command == 'compare':
            remote = read_policies_file(args.policies_file)
            card = read_structured_data(reader)
            log_sync_report(compare_policies(card.insurance_policies, remote))

        elif args.command == 'sync':
            remote = read_policies_file(args.policies_file)
            log_write_result(sync_policies_to_card(reader, remote, base_url=args.profile_base_url))

        elif args.command == 'export':
            card = read_structured_data(reader)
            policies = card.insurance_policies
            if args.policies_file:
                policies = compare_policies(policies, read_policies_file(args.policies_file)).tag_only
            if PolicyCSVHandler(args.output).write_policies(policies):
                logging.info(f"Exported {len(policies)} policies to {args.output}")

        elif args.command == 'dump':
            records = list(iter_records(read_raw_message(reader)))
            if not records:
                logging.info("No NDEF records on card")
                return
            logging.info(f"{len(records)} NDEF records:")
            for record in ndef.message_decoder(encode_message(records), errors='relax'):
                logging.info(f"    {record}")

        elif args.command == 'info':
            ndef_file = NDEFFile(reader)
            logging.info("\nTag Information:")
            logging.info("-" * 40)
            logging.info(f"Reader: {reader.name}")
            logging.info(f"UID: {reader.read_tag_uid()}")
            ndef_file.select_application()
            ndef_file.select_capability_container()
            logging.info(f"CC Bytes: {ndef_file.read_capability_container().hex()}")
            ndef_file.select_ndef_file()
            logging.info(f"NDEF Length: {ndef_file.read_ndef_length()}")

    except KeyboardInterrupt:
        logging.info("Operation stopped by user")
    finally:
        reader.close()


def handle_data_operation(args):
    """Handle data encode/decode operations without NFC."""
    if args.command == 'encode':
        message = encode(load_card_data(args.data_file))
        logging.info(f"NDEF message ({len(message)} bytes): {message.hex()}")
        try:
            tlv_data = build_tlv(message)
            logging.info(f"TLV frame ({len(tlv_data)} bytes): {tlv_data.hex()}")
        except MessageTooLargeError as e:
            logging.warning(f"Message cannot be written: {e}")

    elif args.command == 'decode':
        log_card_data(decode(bytes.fromhex(args.hex)))


def handle_watch(args):
    """Keep a reader session open and react to every tap."""
    session = CardSession(on_event=log_tag_event, base_url=args.profile_base_url)
    session.set_mode(args.mode)
    data = load_card_data(args.data_file) if args.data_file else None
    if data is not None and session.mode is Mode.WRITE:
        session.prepare_write(data)

    monitor = CardMonitor()
    observer = SessionObserver(session)
    monitor.addObserver(observer)

    try:
        logging.info("Watching for cards. Commands: (r)ead mode, (w)rite mode, (c)ancel write, (q)uit")
        while True:
            choice = input().strip().lower()
            if choice == 'q':
                break
            elif choice == 'r':
                session.set_mode(Mode.READ)
            elif choice == 'w':
                session.set_mode(Mode.WRITE)
                if data is not None:
                    session.prepare_write(data)
            elif choice == 'c':
                session.cancel_write()

    except KeyboardInterrupt:
        logging.info("\nOperation stopped by user")
    finally:
        monitor.deleteObserver(observer)


def create_parser():
    """Create argument parser."""
    parser = argparse.ArgumentParser(description='Identity Card NFC Operations')
    parser.add_argument('--verbose', action='store_true',
                        help='Show APDU and parsing details on the console')
    subparsers = parser.add_subparsers(dest='command')

    # Common arguments for commands that write to the card
    write_args = argparse.ArgumentParser(add_help=False)
    write_args.add_argument('--profile-base-url', default=VCARD_PROFILE_BASE_URL,
                            help=f'Base of the derived vCard URL (default: {VCARD_PROFILE_BASE_URL})')

    # NFC Commands
    read_parser = subparsers.add_parser('read', help='Read card contents')
    read_parser.add_argument('--uid', action='store_true',
                             help='Only read tag UID')

    write_parser = subparsers.add_parser('write', parents=[write_args], help='Write card data from JSON')
    write_parser.add_argument('--data-file', '-d', required=True,
                              help='JSON file with personalInfo, emergencyContact, insurancePolicies')

    compare_parser = subparsers.add_parser('compare', help='Compare card policies with a policy CSV')
    compare_parser.add_argument('--policies-file', '-p', required=True,
                                help='CSV file of remote policies')

    sync_parser = subparsers.add_parser('sync', parents=[write_args],
                                        help='Add remote policies missing from the card')
    sync_parser.add_argument('--policies-file', '-p', required=True,
                             help='CSV file of remote policies')

    export_parser = subparsers.add_parser('export', help='Export card policies to CSV')
    export_parser.add_argument('--output', '-o', default='output/card_policies.csv',
                               help='Output CSV file (default: output/card_policies.csv)')
    export_parser.add_argument('--policies-file', '-p',
                               help='Only export policies missing from this remote CSV')

    subparsers.add_parser('dump', help='List raw NDEF records on the card')
    subparsers.add_parser('info', help='Display tag information')

    # Data commands
    encode_parser = subparsers.add_parser('encode', help='Encode card data JSON without a reader')
    encode_parser.add_argument('--data-file', '-d', required=True,
                               help='JSON file with card data')

    decode_parser = subparsers.add_parser('decode', help='Decode NDEF hex without a reader')
    decode_parser.add_argument('--hex', required=True,
                               help='NDEF message as hex')

    # Session command
    watch_parser = subparsers.add_parser('watch', parents=[write_args],
                                         help='Handle every card tap until stopped')
    watch_parser.add_argument('--mode', '-m', choices=[m.value for m in Mode], default=Mode.READ.value,
                              help='Starting mode (default: READ)')
    watch_parser.add_argument('--data-file', '-d',
                              help='JSON file to write on the next tap in WRITE mode')

    return parser


def validate_args(args):
    """Validate command line arguments."""
    if not args.command:
        return False, "No command specified"

    for name in ('data_file', 'policies_file'):
        path = getattr(args, name, None)
        if path and not os.path.exists(path):
            return False, f"File not found: {path}"

    return True, ""


def main():
    parser = create_parser()
    args = parser.parse_args()

    # Validate arguments before setting up logging
    valid, error = validate_args(args)
    if not valid:
        if error:
            print(f"Error: {error}")
        parser.print_help()
        return

    setup_logging(verbose=args.verbose, command=args.command)

    try:
        if args.command in ['encode', 'decode']:
            handle_data_operation(args)
        elif args.command == 'watch':
            handle_watch(args)
        else:
            handle_nfc_operation(args)

    except NFCError as e:
        logging.error(f"Card operation failed: {e}")
    except CardDataError as e:
        logging.error(f"Invalid card data: {e}")
    except FileNotFoundError as e:
        logging.error(f"File not found: {e}")
    except PermissionError as e:
        logging.error(f"Permission denied: {e}")
    except Exception as e:
        logging.error(f"Operation failed: {e}")


if __name__ == "__main__":
    main()
