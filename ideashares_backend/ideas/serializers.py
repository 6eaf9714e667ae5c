# ideas/serializers.py
from rest_framework import serializers
from .models import Idea, Investment


class IdeaSerializer(serializers.ModelSerializer):
    class Meta:
        model = Idea
        fields = ['id', 'owner_address', 'title', 'description', 'image_url',
                  'money_needed', 'share_offered', 'end_date', 'status', 'created_at']


class PostIdeaSerializer(serializers.Serializer):
    owner_address = serializers.CharField(max_length=64)
    title = serializers.CharField(max_length=200)
    description = serializers.CharField()
    image_url = serializers.URLField(max_length=500, required=False, allow_blank=True, allow_null=True)
    money_needed = serializers.DecimalField(max_digits=30, decimal_places=6, min_value=0)
    share_offered = serializers.CharField(max_length=200)
    duration_days = serializers.IntegerField(min_value=1)


class InvestmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Investment
        fields = ['id', 'idea', 'investor_address', 'amount', 'share_percentage',
                  'transaction_id', 'invested_at']
