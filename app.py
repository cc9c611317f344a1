#!/usr/bin/env python3
"""FitTrack Assessment: main entry point and menu system."""

import asyncio
import logging
import sys
from typing import Dict, List, Tuple

import config
import display
from api import HttpTransport
from models import TestType, UserProfile
from scoring import score_measurement
from session import AthleteSession
from storage import PostgresStore, StorageError, StorageService, open_store

# What to ask for per test: (measurement key, prompt)
MEASUREMENT_PROMPTS: Dict[TestType, List[Tuple[str, str]]] = {
    TestType.VERTICAL_JUMP: [("height_cm", "Jump height (cm)")],
    TestType.SHUTTLE_RUN: [("time_seconds", "Shuttle run time (seconds)")],
    TestType.SIT_UPS: [("reps", "Sit-ups completed")],
    TestType.HEIGHT_WEIGHT: [("height_cm", "Height (cm)"), ("weight_kg", "Weight (kg)")],
    TestType.ENDURANCE_RUN: [("distance_m", "Distance covered (meters)")],
}


async def create_profile(session: AthleteSession) -> UserProfile:
    """Prompt for the athlete's details and save them."""
    display.console.print()
    name = display.prompt_text("Athlete's name")
    while not name:
        display.show_error("Name cannot be empty.")
        name = display.prompt_text("Athlete's name")

    profile = UserProfile(
        name=name,
        age=display.prompt_int("Age", 8, 80),
        gender=display.prompt_text("Gender", "unspecified"),
        region=display.prompt_text("Region", ""),
    )
    await session.save_profile(profile)
    display.show_success(f"Profile created for {name}!")
    return profile


async def take_test(session: AthleteSession) -> None:
    """Pick a test, enter the measurements and record the result."""
    test_types = list(TestType)
    choice = display.show_menu(
        "Select Test", [config.TEST_TYPE_DISPLAY[t.value] for t in test_types]
    )
    test_type = test_types[choice - 1]

    display.show_test_intro(test_type.value, await session.benchmarks_for(test_type))

    measurements = {
        key: display.prompt_float(prompt)
        for key, prompt in MEASUREMENT_PROMPTS[test_type]
    }
    try:
        scoring = score_measurement(test_type, measurements)
    except ValueError as e:
        display.show_error(str(e))
        return

    video_path = display.prompt_text("Video file to upload (optional)") or None

    outcome = await session.record_result(test_type, scoring, video_path=video_path)
    display.show_result(outcome.record, outcome.message)
    display.show_new_badges(outcome.new_badges)
    if outcome.submission.success:
        display.show_success(f"Submitted (ref {outcome.submission.submission_id}).")
    else:
        display.show_info(outcome.submission.error)
    if outcome.video_upload:
        display.show_video_upload(outcome.video_upload)


async def show_progress(session: AthleteSession) -> None:
    display.show_progress_dashboard(
        await session.profile(),
        await session.progress(),
        session.catalog.all_badges(),
        await session.insights(),
    )


async def sync_results(session: AthleteSession) -> None:
    pending = await session.pending_count()
    if not pending:
        display.show_info("Nothing waiting to be submitted.")
        return
    display.show_info(f"Submitting {pending} saved result(s)...")
    display.show_sync_result(await session.sync())


async def show_leaderboard(session: AthleteSession) -> None:
    test_types = list(TestType)
    options = ["All Tests"] + [config.TEST_TYPE_DISPLAY[t.value] for t in test_types]
    choice = display.show_menu("Leaderboard", options)
    test_type = test_types[choice - 2] if choice > 1 else None
    display.show_leaderboard(await session.leaderboard(test_type), title=options[choice - 1])


async def discard_saved_result(session: AthleteSession) -> None:
    """Let the athlete stop retrying one saved result."""
    pending = await session.pending_submissions()
    if not pending:
        display.show_info("Nothing waiting to be submitted.")
        return
    options = [display.describe_pending(p) for p in pending] + ["Cancel"]
    choice = display.show_menu("Saved Results", options)
    if choice == len(options):
        return
    target = pending[choice - 1]
    if not display.confirm("This result will never be submitted. Discard it?"):
        return
    if await session.abandon(target.id):
        display.show_success("Saved result discarded. It stays in your history.")
    else:
        display.show_warning("That result is being submitted right now or was already sent.")


async def main_menu_loop(session: AthleteSession) -> None:
    """Main menu loop."""
    while True:
        display.clear_screen()
        display.show_banner()
        profile = await session.profile()
        if profile:
            display.show_info(f"Athlete: {profile.name} | {profile.region or 'No region'}")
        pending = await session.pending_count()
        if pending:
            display.show_warning(f"{pending} result(s) waiting to be submitted.")
        display.console.print()

        options = [
            "Take a Test",
            "View Test History",
            "View Progress",
            "View Badges",
            "Leaderboard",
            "Submit Saved Results",
            "Discard a Saved Result",
            "Edit Profile",
            "Log Out (clear all data)",
            "Exit",
        ]

        choice = display.show_menu("Main Menu", options)

        try:
            if choice == 1:
                await take_test(session)
                display.press_enter_to_continue()

            elif choice == 2:
                display.show_history(await session.history())
                display.press_enter_to_continue()

            elif choice == 3:
                await show_progress(session)
                display.press_enter_to_continue()

            elif choice == 4:
                display.show_badges(session.catalog.all_badges())
                display.press_enter_to_continue()

            elif choice == 5:
                await show_leaderboard(session)
                display.press_enter_to_continue()

            elif choice == 6:
                await sync_results(session)
                display.press_enter_to_continue()

            elif choice == 7:
                await discard_saved_result(session)
                display.press_enter_to_continue()

            elif choice == 8:
                await create_profile(session)

            elif choice == 9:
                if display.confirm("This will delete ALL results, badges and saved submissions. Are you sure?"):
                    await session.logout()
                    display.show_success("All data cleared.")
                    await create_profile(session)

            elif choice == 10:
                display.show_info("Goodbye! Keep training!")
                break

        except KeyboardInterrupt:
            display.console.print("\n")
            display.show_info("Returning to main menu...")
            continue
        except StorageError as e:
            display.show_error(f"Couldn't save your data: {e}")
            display.press_enter_to_continue()


async def run() -> None:
    try:
        store = open_store(config.DB_URL)
    except StorageError as e:
        display.show_error(str(e))
        sys.exit(1)
    if not config.DB_URL:
        display.show_warning("FITTRACK_DB_URL not set. Results will not be kept after exit.")

    storage = StorageService(store)
    transport = HttpTransport()
    try:
        session = await AthleteSession.open(storage, transport)
        if not await session.profile():
            display.show_info("No profile found. Let's create one!")
            await create_profile(session)
        await main_menu_loop(session)
    finally:
        await transport.aclose()
        if isinstance(store, PostgresStore):
            store.close()


def main() -> None:
    """Entry point."""
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    display.clear_screen()
    display.show_banner()
    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        display.console.print("\n")
        display.show_info("Goodbye!")


if __name__ == "__main__":
    main()
