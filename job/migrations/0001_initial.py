import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('companies', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Job',
            fields=[
                ('job_id', models.AutoField(primary_key=True, serialize=False)),
                ('title', models.CharField(max_length=150)),
                ('description', models.TextField()),
                ('requirements', models.TextField(blank=True, default='')),
                ('salary', models.CharField(blank=True, default='A combinar', max_length=100)),
                ('location', models.CharField(max_length=150)),
                ('contract_type', models.CharField(choices=[('CLT', 'CLT'), ('PJ', 'PJ'), ('Freelancer', 'Freelancer'), ('Estágio', 'Internship')], default='CLT', max_length=20)),
                ('work_mode', models.CharField(choices=[('Presencial', 'On-site'), ('Remoto', 'Remote'), ('Híbrido', 'Hybrid')], default='Presencial', max_length=20)),
                ('experience_level', models.CharField(choices=[('Estagiário', 'Intern'), ('Júnior', 'Junior'), ('Pleno', 'Mid'), ('Sênior', 'Senior'), ('Especialista', 'Specialist')], default='Júnior', max_length=20)),
                ('benefits', models.JSONField(blank=True, default=list)),
                ('status', models.CharField(choices=[('Ativa', 'Active'), ('Pausada', 'Paused'), ('Fechada', 'Closed')], default='Ativa', max_length=20)),
                ('application_method', models.CharField(blank=True, choices=[('WhatsApp', 'WhatsApp'), ('Email', 'Email'), ('Telefone', 'Phone'), ('Presencial', 'In person'), ('Site', 'Website'), ('Outro', 'Other')], default='', max_length=20)),
                ('contact_info', models.CharField(blank=True, default='', max_length=255)),
                ('has_external_application', models.BooleanField(default=False)),
                ('payment_status', models.CharField(blank=True, choices=[('pending', 'Pending'), ('approved', 'Approved'), ('rejected', 'Rejected'), ('cancelled', 'Cancelled')], max_length=20, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('company', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='jobs', to='companies.company')),
            ],
            options={
                'ordering': ['-created_at'],
            },
        ),
    ]
