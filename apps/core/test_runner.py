from django.apps import apps
from django.test.runner import DiscoverRunner
from django.utils.module_loading import module_has_submodule


class InstalledAppsOnlyDiscoverRunner(DiscoverRunner):
    """Without explicit labels, run the tests of the project's own apps only."""

    app_prefix = 'apps.core.'

    def build_suite(self, test_labels=None, extra_tests=None, **kwargs):
        if not test_labels:
            test_labels = [
                app_config.name
                for app_config in apps.get_app_configs()
                if app_config.name.startswith(self.app_prefix)
                and module_has_submodule(app_config.module, 'tests')
            ]
        return super().build_suite(test_labels=test_labels, extra_tests=extra_tests, **kwargs)
