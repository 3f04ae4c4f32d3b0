from rest_framework import serializers
from job.models import Job
from job.utils import format_time_ago, normalize_benefits, validate_text_field
from applications.models import Application
from users.models import Profile
from companies.models import Company
from payments.models import Payment


class ProfileSerializer(serializers.ModelSerializer):
    company_id = serializers.SerializerMethodField()

    class Meta:
        model = Profile
        fields = ['id', 'email', 'role', 'company_id', 'created_at']
        read_only_fields = fields

    def get_company_id(self, obj):
        if hasattr(obj, 'company'):
            return obj.company.company_id
        return None


class RegistrationSerializer(serializers.Serializer):
    email = serializers.EmailField(max_length=150)
    password = serializers.CharField(write_only=True, min_length=6)
    name = serializers.CharField(max_length=150)
    cnpj = serializers.CharField(max_length=18)
    phone = serializers.CharField(max_length=30)
    address = serializers.CharField(max_length=255)
    city = serializers.CharField(max_length=100, required=False, allow_blank=True)
    sector = serializers.CharField(max_length=100)
    legal_representative = serializers.CharField(max_length=150)
    description = serializers.CharField(required=False, allow_blank=True)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)


class CnpjSerializer(serializers.Serializer):
    cnpj = serializers.CharField(max_length=18)


class StatusSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)


class CompanySerializer(serializers.ModelSerializer):
    owner_email = serializers.CharField(source='owner.email', read_only=True, default=None)
    jobs_count = serializers.SerializerMethodField()

    class Meta:
        model = Company
        fields = [
            'company_id',
            'owner',
            'owner_email',
            'name',
            'cnpj',
            'email',
            'phone',
            'address',
            'city',
            'sector',
            'legal_representative',
            'description',
            'status',
            'jobs_count',
            'created_at',
            'updated_at'
        ]
        read_only_fields = ['company_id', 'owner', 'status', 'created_at', 'updated_at']

    def get_jobs_count(self, obj):
        return obj.jobs.count()


class JobSerializer(serializers.ModelSerializer):
    company_name = serializers.CharField(source='company.name', read_only=True)
    company_city = serializers.CharField(source='company.city', read_only=True)
    time_ago = serializers.SerializerMethodField()
    benefits = serializers.ListField(child=serializers.CharField(allow_blank=True), required=False)

    TEXT_FIELDS = ['title', 'description', 'requirements', 'salary', 'location', 'application_method', 'contact_info']

    class Meta:
        model = Job
        fields = [
            'job_id',
            'company',
            'company_name',
            'company_city',
            'title',
            'description',
            'requirements',
            'salary',
            'location',
            'contract_type',
            'work_mode',
            'experience_level',
            'benefits',
            'status',
            'application_method',
            'contact_info',
            'has_external_application',
            'payment',
            'payment_status',
            'time_ago',
            'created_at',
            'updated_at'
        ]
        read_only_fields = ['job_id', 'company', 'status', 'payment', 'payment_status', 'created_at', 'updated_at']

    def get_time_ago(self, obj):
        return format_time_ago(obj.created_at) if obj.created_at else None

    def validate_benefits(self, value):
        return normalize_benefits(value)

    def validate(self, data):
        errors = {}
        for field in self.TEXT_FIELDS:
            problems = validate_text_field(data.get(field))
            if problems:
                errors[field] = problems
        for index, benefit in enumerate(data.get('benefits') or []):
            problems = validate_text_field(benefit)
            if problems:
                errors.setdefault('benefits', []).append(f"Benefício {index + 1}: {', '.join(problems)}")
        if errors:
            raise serializers.ValidationError(errors)

        def current(field):
            if field in data:
                return data[field]
            return getattr(self.instance, field, None) if self.instance else None

        if current('has_external_application'):
            if not (current('application_method') or '').strip():
                errors['application_method'] = 'Informe como o candidato deve se candidatar.'
            if not (current('contact_info') or '').strip():
                errors['contact_info'] = 'Informe o contato para candidatura.'
            if errors:
                raise serializers.ValidationError(errors)
        return data


class ApplicationSerializer(serializers.ModelSerializer):
    job_title = serializers.CharField(source='job.title', read_only=True)
    company_name = serializers.CharField(source='job.company.name', read_only=True)
    time_ago = serializers.SerializerMethodField()

    class Meta:
        model = Application
        fields = [
            'application_id', 'job', 'job_title', 'company_name',
            'name', 'email', 'phone', 'linkedin', 'experience_years',
            'current_position', 'education', 'skills', 'cover_letter',
            'resume_url', 'resume_analysis', 'status', 'time_ago',
            'created_at', 'updated_at'
        ]
        read_only_fields = fields

    def get_time_ago(self, obj):
        return format_time_ago(obj.created_at) if obj.created_at else None


class PaymentSerializer(serializers.ModelSerializer):
    company_name = serializers.CharField(source='company.name', read_only=True)

    class Meta:
        model = Payment
        fields = [
            'payment_id', 'company', 'company_name', 'job', 'amount', 'status',
            'preference_id', 'processor_payment_id', 'paid_at', 'created_at'
        ]
        read_only_fields = fields


class ExtractTextSerializer(serializers.Serializer):
    text = serializers.CharField()
    current = serializers.DictField(required=False)


class ExtractImageSerializer(serializers.Serializer):
    image = serializers.FileField()
    current = serializers.JSONField(required=False, binary=True)

    def validate_current(self, value):
        if not isinstance(value, dict):
            raise serializers.ValidationError('Envie os campos atuais do formulário como objeto JSON.')
        return value


class ResumeTextSerializer(serializers.Serializer):
    resume_text = serializers.CharField()


class JobDescriptionSerializer(serializers.Serializer):
    title = serializers.CharField(max_length=150)
    company = serializers.CharField(max_length=150, required=False, allow_blank=True)
    requirements = serializers.CharField(required=False, allow_blank=True)


class InterviewQuestionsSerializer(serializers.Serializer):
    job_title = serializers.CharField(max_length=150)
    experience = serializers.CharField(max_length=50, required=False, allow_blank=True)
