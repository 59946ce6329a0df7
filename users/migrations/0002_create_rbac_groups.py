# users/migrations/0002_create_rbac_groups.py
"""Create initial RBAC groups with permissions."""
from django.db import migrations


def create_groups(apps, schema_editor):
    Group = apps.get_model('auth', 'Group')
    Permission = apps.get_model('auth', 'Permission')

    # Define groups and their permission codenames
    groups_config = {
        'Admin': None,  # Gets all permissions
        'Store Manager': [
            # Inventory
            'view_inventoryrecord', 'change_inventoryrecord',
            'view_stockmovement', 'add_stockmovement',
            # Stock releases (approver)
            'view_stockrelease', 'add_stockrelease', 'change_stockrelease', 'delete_stockrelease',
            'view_stockreleaseitem', 'add_stockreleaseitem', 'change_stockreleaseitem',
            # Catalog / locations (view only)
            'view_product', 'view_location',
        ],
        'Technician': [
            # Job usage requests
            'view_stockrelease', 'add_stockrelease',
            'view_stockreleaseitem', 'add_stockreleaseitem',
            'view_inventoryrecord', 'view_product', 'view_location',
        ],
        'Warehouse': [
            'view_inventoryrecord', 'change_inventoryrecord',
            'view_stockmovement', 'add_stockmovement',
            'view_stockrelease', 'change_stockrelease',
            'view_stockreleaseitem', 'change_stockreleaseitem',
            'view_product', 'view_location',
        ],
    }

    for group_name, codenames in groups_config.items():
        group, _ = Group.objects.get_or_create(name=group_name)

        if codenames is None:
            # Admin gets all permissions
            group.permissions.set(Permission.objects.all())
        else:
            perms = Permission.objects.filter(codename__in=codenames)
            group.permissions.set(perms)


def remove_groups(apps, schema_editor):
    Group = apps.get_model('auth', 'Group')
    Group.objects.filter(name__in=['Admin', 'Store Manager', 'Technician', 'Warehouse']).delete()


class Migration(migrations.Migration):
    dependencies = [
        ('users', '0001_initial'),
    ]

    operations = [
        migrations.RunPython(create_groups, remove_groups),
    ]
