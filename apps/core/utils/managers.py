from django.db import models


class AccountQuerySet(models.QuerySet):
    def for_account(self, account_id):
        return self.filter(account_id=account_id)

    def missing_account_id(self):
        return self.filter(account_id__isnull=True)


class AccountManager(models.Manager):
    def get_queryset(self):
        return AccountQuerySet(self.model, using=self._db)

    def for_account(self, account_id):
        return self.get_queryset().for_account(account_id)

    def missing_account_id(self):
        return self.get_queryset().missing_account_id()
