from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('accounts', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='adminuser',
            name='first_admin',
            field=models.BooleanField(default=None, editable=False, null=True, unique=True),
        ),
    ]
