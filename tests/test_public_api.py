"""Test the public library API imports."""


class TestPublicAPIImports:
    """Test that the public API can be imported correctly."""

    def test_basic_import(self):
        import dirscribe

        assert hasattr(dirscribe, "__version__")
        assert hasattr(dirscribe, "__all__")

    def test_everything_in_all_is_exported(self):
        import dirscribe

        missing = [name for name in dirscribe.__all__ if not hasattr(dirscribe, name)]
        assert missing == []

    def test_exception_hierarchy(self):
        from dirscribe import (
            ConfigurationError,
            DirscribeError,
            InvocationError,
            ProviderError,
            SummaryFormatError,
            TemplateError,
        )

        for error in (
            ConfigurationError,
            InvocationError,
            ProviderError,
            SummaryFormatError,
            TemplateError,
        ):
            assert issubclass(error, DirscribeError)

    def test_entry_points_are_coroutine_and_function(self):
        import inspect

        from dirscribe import apply_summaries, summarize

        assert inspect.iscoroutinefunction(summarize)
        assert not inspect.iscoroutinefunction(apply_summaries)
