from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """
    Custom User Model inheriting from AbstractUser for flexibility.

    Staff accounts are the audit identity on stock movements and on every
    stock release transition (requested, approved, released, received).
    """

    name = models.CharField(max_length=255, blank=True)
    default_location = models.ForeignKey(
        'locations.Location',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        help_text="Branch or warehouse this user normally works from"
    )

    def __str__(self):
        return self.name or self.username
