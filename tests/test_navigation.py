from authshell.auth import AuthSessionContext
from authshell.models.enums import Screen
from authshell.services.navigation import SceneNavigator

import pytest


class TestSceneNavigator:
    def test_navigate_switches_screen(self, presenter, logger):
        """Should show the requested screen."""
        navigator = SceneNavigator(presenter, logger)

        assert navigator.navigate(Screen.LOGIN) is True
        assert presenter.active_screen == Screen.LOGIN

    def test_navigate_is_idempotent(self, presenter, logger):
        """Should not rebuild the screen that is already active."""
        navigator = SceneNavigator(presenter, logger)
        navigator.navigate(Screen.PROFILE)

        assert navigator.navigate(Screen.PROFILE) is False
        assert presenter.screens == [Screen.PROFILE]


class TestAuthSessionContext:
    def test_flag_defaults_off(self):
        """Should start with no sign-up in progress."""
        assert not AuthSessionContext().is_sign_up_in_progress

    def test_sign_up_flow_sets_and_clears(self):
        """Should hold the flag only inside the block."""
        context = AuthSessionContext()
        with context.sign_up_flow():
            assert context.is_sign_up_in_progress
        assert not context.is_sign_up_in_progress

    def test_sign_up_flow_clears_on_error(self):
        """Should clear the flag when the block raises."""
        context = AuthSessionContext()
        with pytest.raises(RuntimeError):
            with context.sign_up_flow():
                raise RuntimeError("create failed")
        assert not context.is_sign_up_in_progress
