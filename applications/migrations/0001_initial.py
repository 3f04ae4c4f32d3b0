import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('job', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Application',
            fields=[
                ('application_id', models.AutoField(primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=150)),
                ('email', models.EmailField(max_length=150)),
                ('phone', models.CharField(max_length=30)),
                ('linkedin', models.URLField(blank=True, default='', max_length=255)),
                ('experience_years', models.PositiveIntegerField(blank=True, null=True)),
                ('current_position', models.CharField(blank=True, default='', max_length=150)),
                ('education', models.TextField(blank=True, default='')),
                ('skills', models.JSONField(blank=True, default=list)),
                ('cover_letter', models.TextField(blank=True, default='')),
                ('resume_url', models.URLField(blank=True, default='', max_length=500)),
                ('resume_path', models.CharField(blank=True, default='', max_length=255)),
                ('resume_analysis', models.TextField(blank=True, null=True)),
                ('status', models.CharField(choices=[('Novo', 'New'), ('Visualizado', 'Viewed'), ('Contato', 'Contacted'), ('Aprovado', 'Approved'), ('Rejeitado', 'Rejected')], default='Novo', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('job', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='applications', to='job.job')),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
    ]
